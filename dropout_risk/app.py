"""
Student Dropout Risk Dashboard - Main Application
"""

import logging
from datetime import date

from flask import Flask, Blueprint, request, jsonify, current_app, Response
from flask_login import LoginManager, login_user, login_required, logout_user, current_user
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from .config import Config
from .errors import RiskDashboardError, InvalidRequest
from .ingestion import ingest_upload
from .models import db, User, Student, InterventionNote, SCORING_FIELDS, GENDERS
from .predictor import predict_batch
from .reports import filter_students, students_frame, dashboard_stats, summary_statistics, export_csv, is_valid_level
from .risk_model import explain_risk, get_intervention_strategy
from .store import StudentStore

migrate = Migrate()
login_manager = LoginManager()

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')
api_bp = Blueprint('api', __name__, url_prefix='/api')

EDITABLE_FIELDS = ('name', 'email', 'department', 'gender') + SCORING_FIELDS
ALLOWED_UPLOAD_EXTENSIONS = ('.csv',)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Please log in to access this resource.'}), 401


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest('Request body must be a JSON object')
    return data


def _get_student_or_404(student_id):
    student = db.session.get(Student, student_id)
    if student is None:
        return None, (jsonify({'error': 'Student not found'}), 404)
    return student, None


# AUTH

@auth_bp.route('/login', methods=['POST'])
def login():
    """Login for staff members"""
    data = _json_body()
    user = User.query.filter_by(username=data.get('username', '')).first()

    if user and user.check_password(data.get('password', '')):
        login_user(user)
        return jsonify({'message': 'Login successful', 'user': {
            'id': user.id, 'username': user.username,
            'display_name': user.display_name, 'role': user.role,
        }})
    return jsonify({'error': 'Invalid username or password'}), 401


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'You have been logged out successfully'})


# PREDICTION

@api_bp.route('/predict', methods=['POST'])
@login_required
def predict():
    """Run risk prediction for new students or an explicit list of ids"""
    data = _json_body()
    student_ids = data.get('studentIds')
    if student_ids is not None and not isinstance(student_ids, list):
        raise InvalidRequest('studentIds must be a list')
    if student_ids and not all(isinstance(student_id, str) for student_id in student_ids):
        raise InvalidRequest('studentIds must be a list of student id strings')

    summary = predict_batch(
        StudentStore(),
        process_new_students=bool(data.get('processNewStudents')),
        student_ids=student_ids,
        batch_size=current_app.config['PREDICTION_BATCH_SIZE'],
    )
    return jsonify(summary.to_dict())


@api_bp.route('/upload', methods=['POST'])
@login_required
def upload():
    """Upload a CSV of students, then score the new records"""
    file = request.files.get('file')
    if file is None or not file.filename:
        raise InvalidRequest('No file uploaded')
    if not file.filename.lower().endswith(ALLOWED_UPLOAD_EXTENSIONS):
        raise InvalidRequest('Please upload a valid CSV file (.csv)')

    try:
        content = file.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        raise InvalidRequest('Failed to read file') from None

    result = ingest_upload(
        StudentStore(), content,
        batch_size=current_app.config['INGEST_BATCH_SIZE'],
        prediction_batch_size=current_app.config['PREDICTION_BATCH_SIZE'],
    )
    return jsonify(result), 201


# STUDENTS

@api_bp.route('/students', methods=['GET'])
@login_required
def list_students():
    risk_level = request.args.get('risk_level')
    if risk_level and not is_valid_level(risk_level):
        raise InvalidRequest(f'Unknown risk level: {risk_level}')

    students = filter_students(
        risk_level=risk_level,
        department=request.args.get('department'),
        search=request.args.get('search'),
    ).all()
    return jsonify({
        'students': [student.to_dict() for student in students],
        'count': len(students),
    })


@api_bp.route('/students/<student_id>', methods=['GET'])
@login_required
def get_student(student_id):
    student, error = _get_student_or_404(student_id)
    if error:
        return error

    result = student.to_dict()
    result['explanation'] = explain_risk(student)
    result['intervention_strategy'] = get_intervention_strategy(student.risk_level)
    result['interventions'] = [note.to_dict() for note in student.interventions]
    return jsonify(result)


@api_bp.route('/students/<student_id>', methods=['PATCH'])
@login_required
def update_student(student_id):
    student, error = _get_student_or_404(student_id)
    if error:
        return error

    data = _json_body()
    unknown = sorted(set(data) - set(EDITABLE_FIELDS))
    if unknown:
        raise InvalidRequest(f"Fields cannot be edited: {', '.join(unknown)}")
    if 'gender' in data and data['gender'] not in GENDERS:
        raise InvalidRequest(f"Unknown gender: {data['gender']}")

    changed = [name for name, value in data.items() if getattr(student, name) != value]
    for name in changed:
        setattr(student, name, data[name])

    if current_app.config['INVALIDATE_SCORE_ON_EDIT'] and set(changed) & set(SCORING_FIELDS):
        student.clear_prediction()

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning("Rejected update for student %s: %s", student_id, e)
        return jsonify({'error': 'Invalid student data'}), 400

    return jsonify(student.to_dict())


@api_bp.route('/students/<student_id>', methods=['DELETE'])
@login_required
def delete_student(student_id):
    student, error = _get_student_or_404(student_id)
    if error:
        return error

    db.session.delete(student)
    db.session.commit()
    return '', 204


# INTERVENTIONS

@api_bp.route('/students/<student_id>/interventions', methods=['GET'])
@login_required
def list_interventions(student_id):
    student, error = _get_student_or_404(student_id)
    if error:
        return error

    notes = InterventionNote.query.filter_by(student_id=student.id).order_by(
        InterventionNote.created_at.desc()).all()
    return jsonify({'interventions': [note.to_dict() for note in notes]})


@api_bp.route('/students/<student_id>/interventions', methods=['POST'])
@login_required
def create_intervention(student_id):
    student, error = _get_student_or_404(student_id)
    if error:
        return error

    data = _json_body()
    missing = [name for name in ('note', 'intervention_type') if not data.get(name)]
    if missing:
        raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")

    try:
        follow_up_date = date.fromisoformat(data['follow_up_date']) if data.get('follow_up_date') else None
    except (TypeError, ValueError):
        raise InvalidRequest('follow_up_date must be an ISO date (YYYY-MM-DD)') from None

    note = InterventionNote(
        student_id=student.id,
        staff_member=data.get('staff_member') or current_user.display_name or current_user.username,
        note=data['note'],
        intervention_type=data['intervention_type'],
        follow_up_date=follow_up_date,
    )
    db.session.add(note)
    db.session.commit()
    return jsonify(note.to_dict()), 201


@api_bp.route('/interventions/<note_id>', methods=['PATCH'])
@login_required
def update_intervention(note_id):
    note = db.session.get(InterventionNote, note_id)
    if note is None:
        return jsonify({'error': 'Intervention note not found'}), 404

    data = _json_body()
    if 'completed' in data:
        note.completed = bool(data['completed'])
    if data.get('note'):
        note.note = data['note']
    db.session.commit()
    return jsonify(note.to_dict())


# DASHBOARD & REPORTS

@api_bp.route('/dashboard', methods=['GET'])
@login_required
def dashboard():
    return jsonify(dashboard_stats())


def _filtered_frame():
    risk_level = request.args.get('risk_level')
    if risk_level and not is_valid_level(risk_level):
        raise InvalidRequest(f'Unknown risk level: {risk_level}')
    students = filter_students(risk_level=risk_level, department=request.args.get('department')).all()
    return students_frame(students)


@api_bp.route('/reports/summary', methods=['GET'])
@login_required
def report_summary():
    return jsonify(summary_statistics(_filtered_frame()))


@api_bp.route('/reports/export', methods=['GET'])
@login_required
def report_export():
    high_risk_only = request.args.get('high_risk_only') in ('1', 'true', 'yes')
    csv_text = export_csv(_filtered_frame(), high_risk_only=high_risk_only)
    prefix = 'high_risk_students' if high_risk_only else 'student_dropout_risk_report'
    filename = f"{prefix}_{date.today().isoformat()}.csv"
    return Response(csv_text, mimetype='text/csv',
                    headers={'Content-Disposition': f'attachment; filename={filename}'})


# ERRORS

def handle_dashboard_error(error):
    if error.status_code >= 500:
        current_app.logger.error("Prediction error: %s", error.message)
    return jsonify({'error': error.message}), error.status_code


def not_found(error):
    return jsonify({'error': 'Not found'}), 404


def internal_error(error):
    db.session.rollback()
    return jsonify({'error': 'Internal server error'}), 500


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(level=app.config['LOG_LEVEL'])

    # Initialize database
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)

    app.register_error_handler(RiskDashboardError, handle_dashboard_error)
    app.register_error_handler(404, not_found)
    app.register_error_handler(500, internal_error)

    from .cli import register_commands
    register_commands(app)

    return app
