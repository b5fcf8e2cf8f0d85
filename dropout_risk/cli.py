import click

from .errors import RiskDashboardError
from .models import db, User
from .predictor import predict_batch
from .store import StudentStore


def register_commands(app):

    @app.cli.command('init-db')
    @click.option('--admin-username', default=None, help='Create a staff account with this username.')
    @click.option('--admin-password', default=None, help='Password for the staff account.')
    def init_db(admin_username, admin_password):
        """Create database tables and an optional staff account."""
        db.create_all()
        click.echo('Database tables created successfully!')

        if admin_username:
            if not admin_password:
                raise click.UsageError('--admin-password is required with --admin-username')
            if User.query.filter_by(username=admin_username).first():
                click.echo(f"User '{admin_username}' already exists")
                return
            user = User(username=admin_username, display_name=admin_username, role='admin')
            user.set_password(admin_password)
            db.session.add(user)
            db.session.commit()
            click.echo(f"Admin user created: username='{admin_username}'")

    @app.cli.command('predict-risk')
    @click.option('--all', 'process_new', is_flag=True, help='Score every student without a risk score.')
    @click.option('--id', 'student_ids', multiple=True, help='Score a specific student (repeatable).')
    def predict_risk(process_new, student_ids):
        """Run the batch risk predictor."""
        store = StudentStore()
        if process_new:
            click.echo(f'{store.count_unscored()} students awaiting risk prediction')
        try:
            summary = predict_batch(
                store,
                process_new_students=process_new,
                student_ids=list(student_ids),
                batch_size=app.config['PREDICTION_BATCH_SIZE'],
            )
        except RiskDashboardError as e:
            raise click.ClickException(e.message)
        click.echo(f'Updated {summary.processed_count} of {summary.total_count} students')
