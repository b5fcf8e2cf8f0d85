from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
import uuid

# Create db instance
db = SQLAlchemy()

RISK_LEVELS = ('low', 'medium', 'high')
GENDERS = ('male', 'female', 'other')

# Raw attributes that feed the risk calculators
SCORING_FIELDS = (
    'attendance_percentage', 'cgpa', 'sgpa', 'semester',
    'fee_default', 'scholarship', 'disciplinary_actions', 'extracurriculars',
    'family_income', 'distance_from_home',
    'hostel_accommodation', 'previous_education_gap',
)


def _new_id():
    return str(uuid.uuid4())


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    username = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    display_name = db.Column(db.String(120))
    role = db.Column(db.String(20), default='admin')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class Student(db.Model):
    __tablename__ = 'students'
    __table_args__ = (
        db.CheckConstraint('semester > 0', name='ck_students_semester'),
        db.CheckConstraint('attendance_percentage >= 0 AND attendance_percentage <= 100',
                           name='ck_students_attendance'),
        db.CheckConstraint('cgpa >= 0 AND cgpa <= 10', name='ck_students_cgpa'),
        db.CheckConstraint('sgpa >= 0 AND sgpa <= 10', name='ck_students_sgpa'),
        db.CheckConstraint('disciplinary_actions >= 0', name='ck_students_disciplinary'),
        db.CheckConstraint('extracurriculars >= 0', name='ck_students_extracurriculars'),
        db.CheckConstraint('risk_score IS NULL OR (risk_score >= 0 AND risk_score <= 1)',
                           name='ck_students_risk_score'),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    student_id = db.Column(db.String(20), unique=True, nullable=False)
    department = db.Column(db.String(50), nullable=False, index=True)
    semester = db.Column(db.Integer, nullable=False, default=1, index=True)
    gender = db.Column(db.Enum(*GENDERS, name='gender'), nullable=False, default='other')

    attendance_percentage = db.Column(db.Float, nullable=False, default=0.0)
    cgpa = db.Column(db.Float, nullable=False, default=0.0)
    sgpa = db.Column(db.Float, nullable=False, default=0.0)
    fee_default = db.Column(db.Boolean, nullable=False, default=False)
    disciplinary_actions = db.Column(db.Integer, nullable=False, default=0)
    scholarship = db.Column(db.Boolean, nullable=False, default=False)
    extracurriculars = db.Column(db.Integer, nullable=False, default=0)
    family_income = db.Column(db.Float)
    distance_from_home = db.Column(db.Float)
    hostel_accommodation = db.Column(db.Boolean, nullable=False, default=False)
    previous_education_gap = db.Column(db.Boolean, nullable=False, default=False)

    # Filled in by the batch predictor; NULL risk_score marks an unscored record
    risk_score = db.Column(db.Float, index=True)
    risk_level = db.Column(db.Enum(*RISK_LEVELS, name='risk_level'), index=True)
    prediction_factors = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    interventions = db.relationship('InterventionNote', backref='student', lazy=True,
                                    cascade='all, delete-orphan')

    def clear_prediction(self):
        self.risk_score = None
        self.risk_level = None
        self.prediction_factors = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'student_id': self.student_id,
            'department': self.department,
            'semester': self.semester,
            'gender': self.gender,
            'attendance_percentage': self.attendance_percentage,
            'cgpa': self.cgpa,
            'sgpa': self.sgpa,
            'fee_default': self.fee_default,
            'disciplinary_actions': self.disciplinary_actions,
            'scholarship': self.scholarship,
            'extracurriculars': self.extracurriculars,
            'family_income': self.family_income,
            'distance_from_home': self.distance_from_home,
            'hostel_accommodation': self.hostel_accommodation,
            'previous_education_gap': self.previous_education_gap,
            'risk_score': self.risk_score,
            'risk_level': self.risk_level,
            'prediction_factors': self.prediction_factors,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class InterventionNote(db.Model):
    __tablename__ = 'intervention_notes'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    student_id = db.Column(db.String(36), db.ForeignKey('students.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    staff_member = db.Column(db.String(100), nullable=False)
    note = db.Column(db.Text, nullable=False)
    intervention_type = db.Column(db.String(50), nullable=False)
    follow_up_date = db.Column(db.Date)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'staff_member': self.staff_member,
            'note': self.note,
            'intervention_type': self.intervention_type,
            'follow_up_date': self.follow_up_date.isoformat() if self.follow_up_date else None,
            'completed': self.completed,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
