"""
Reporting helpers: dashboard counts, filtered statistics and CSV exports.
"""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from .models import db, Student, RISK_LEVELS

EXPORT_COLUMNS = {
    'name': 'Name',
    'email': 'Email',
    'student_id': 'Student ID',
    'department': 'Department',
    'semester': 'Semester',
    'gender': 'Gender',
    'attendance_percentage': 'Attendance %',
    'cgpa': 'CGPA',
    'sgpa': 'SGPA',
    'fee_default': 'Fee Default',
    'disciplinary_actions': 'Disciplinary Actions',
    'scholarship': 'Scholarship',
    'extracurriculars': 'Extracurriculars',
    'risk_level': 'Risk Level',
    'risk_score': 'Risk Score',
    'created_at': 'Date Added',
}

HISTOGRAM_BINS = 10


def filter_students(risk_level=None, department=None, search=None):
    query = Student.query
    if risk_level:
        query = query.filter(Student.risk_level == risk_level)
    if department:
        query = query.filter(Student.department == department)
    if search:
        pattern = f"%{search}%"
        query = query.filter(db.or_(
            Student.name.ilike(pattern),
            Student.email.ilike(pattern),
            Student.student_id.ilike(pattern),
        ))
    return query.order_by(Student.created_at.desc())


def students_frame(students):
    columns = list(EXPORT_COLUMNS)
    return pd.DataFrame([student.to_dict() for student in students], columns=columns)


def dashboard_stats(now=None):
    """Headline numbers for the dashboard."""
    now = now or datetime.utcnow()
    counts = dict(
        db.session.query(Student.risk_level, db.func.count(Student.id))
        .group_by(Student.risk_level)
        .all()
    )
    recent_uploads = Student.query.filter(Student.created_at >= now - timedelta(days=7)).count()
    return {
        'totalStudents': Student.query.count(),
        'highRisk': counts.get('high', 0),
        'mediumRisk': counts.get('medium', 0),
        'lowRisk': counts.get('low', 0),
        'unanalyzed': counts.get(None, 0),
        'recentUploads': recent_uploads,
    }


def summary_statistics(frame):
    """Statistics over a frame built by ``students_frame``."""
    total = len(frame)
    level_counts = frame['risk_level'].value_counts()
    scores = frame['risk_score'].dropna().astype(float).to_numpy()
    histogram, edges = np.histogram(scores, bins=HISTOGRAM_BINS, range=(0.0, 1.0))

    return {
        'total': total,
        'highRisk': int(level_counts.get('high', 0)),
        'mediumRisk': int(level_counts.get('medium', 0)),
        'lowRisk': int(level_counts.get('low', 0)),
        'unanalyzed': int(frame['risk_level'].isna().sum()),
        'averageAttendance': int(round(frame['attendance_percentage'].mean())) if total else 0,
        'averageCGPA': round(float(frame['cgpa'].mean()), 2) if total else 0,
        'scoreHistogram': [
            {'from': round(float(low), 2), 'to': round(float(high), 2), 'count': int(count)}
            for low, high, count in zip(edges[:-1], edges[1:], histogram)
        ],
        'departments': sorted(frame['department'].dropna().unique().tolist()),
    }


def _format_score(score):
    if pd.isna(score):
        return 'N/A'
    return f"{round(score * 100)}%"


def export_csv(frame, high_risk_only=False):
    """Render the students frame as a downloadable CSV string."""
    if high_risk_only:
        frame = frame[frame['risk_level'] == 'high']
    frame = frame.copy()
    for column in ('fee_default', 'scholarship'):
        frame[column] = frame[column].map({True: 'Yes', False: 'No'})
    frame['risk_level'] = frame['risk_level'].fillna('Not Analyzed')
    frame['risk_score'] = frame['risk_score'].map(_format_score)
    frame['created_at'] = pd.to_datetime(frame['created_at']).dt.strftime('%Y-%m-%d')
    return frame.rename(columns=EXPORT_COLUMNS).to_csv(index=False)


def is_valid_level(level):
    return level in RISK_LEVELS
