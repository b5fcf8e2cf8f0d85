import pytest

from dropout_risk import create_app
from dropout_risk.models import db, User, Student


TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test-secret',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'PREDICTION_BATCH_SIZE': 50,
    'INGEST_BATCH_SIZE': 50,
    'INVALIDATE_SCORE_ON_EDIT': False,
}


def build_app(**overrides):
    app = create_app({**TEST_CONFIG, **overrides})
    with app.app_context():
        db.create_all()
        user = User(username='advisor', display_name='Dr. Advisor', role='admin')
        user.set_password('secret123')
        db.session.add(user)
        db.session.commit()
    return app


@pytest.fixture
def app():
    app = build_app()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    response = client.post('/auth/login', json={'username': 'advisor', 'password': 'secret123'})
    assert response.status_code == 200
    return client


def make_student(**fields):
    defaults = {
        'name': 'Asha Rao',
        'email': 'asha@uni.edu',
        'student_id': 'S001',
        'department': 'CSE',
        'semester': 5,
        'gender': 'female',
        'attendance_percentage': 85.5,
        'cgpa': 7.2,
        'sgpa': 7.8,
        'fee_default': False,
        'disciplinary_actions': 0,
        'scholarship': True,
        'extracurriculars': 3,
        'hostel_accommodation': False,
        'previous_education_gap': False,
    }
    defaults.update(fields)
    return Student(**defaults)


@pytest.fixture
def add_student(app):
    def _add(**fields):
        with app.app_context():
            student = make_student(**fields)
            db.session.add(student)
            db.session.commit()
            return student.id
    return _add
