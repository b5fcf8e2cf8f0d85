"""
Rule-based dropout risk scoring.

Six calculators turn raw student attributes into a risk contribution in
[0, 1]; ``predict_dropout_risk`` weighs them into a single score and a
low / medium / high level.
"""

import math

WEIGHTS = {
    'attendance': 0.25,
    'academic': 0.20,
    'financial': 0.15,
    'behavioral': 0.15,
    'engagement': 0.10,
    'demographic': 0.15,
}

HIGH_RISK_THRESHOLD = 0.70
MEDIUM_RISK_THRESHOLD = 0.40


def _get(student, field, default=None):
    """Read an attribute from a Student model or a plain dict."""
    if isinstance(student, dict):
        return student.get(field, default)
    return getattr(student, field, default)


def round_half_up(value):
    """Round to 2 decimals, halves away from zero."""
    return math.floor(value * 100 + 0.5) / 100


def calculate_attendance_risk(attendance):
    if attendance >= 90:
        return 0.1
    if attendance >= 80:
        return 0.3
    if attendance >= 70:
        return 0.5
    if attendance >= 60:
        return 0.7
    return 0.9


def calculate_academic_risk(cgpa, sgpa):
    avg_gpa = (cgpa + sgpa) / 2
    if avg_gpa >= 8.0:
        return 0.1
    if avg_gpa >= 7.0:
        return 0.2
    if avg_gpa >= 6.0:
        return 0.4
    if avg_gpa >= 5.0:
        return 0.6
    return 0.8


def calculate_financial_risk(fee_default, scholarship, family_income=None):
    risk = 0.0
    if fee_default:
        risk += 0.6
    if not scholarship:
        risk += 0.2
    if family_income is not None:
        if family_income < 200000:
            risk += 0.3
        elif family_income < 500000:
            risk += 0.1
    return min(risk, 1.0)


def calculate_behavioral_risk(disciplinary_actions):
    if disciplinary_actions == 0:
        return 0.1
    if disciplinary_actions == 1:
        return 0.4
    if disciplinary_actions == 2:
        return 0.6
    return 0.8


def calculate_engagement_risk(extracurriculars):
    if extracurriculars >= 3:
        return 0.1
    if extracurriculars >= 2:
        return 0.2
    if extracurriculars >= 1:
        return 0.3
    return 0.5


def calculate_demographic_risk(distance_from_home=None, hostel_accommodation=False,
                               previous_education_gap=False, semester=1):
    risk = 0.0
    if distance_from_home is not None and distance_from_home > 500:
        risk += 0.2
    if hostel_accommodation:
        risk += 0.1
    if previous_education_gap:
        risk += 0.3
    if semester > 6:
        risk += 0.1
    return min(risk, 1.0)


def get_risk_level(risk_score):
    if risk_score >= HIGH_RISK_THRESHOLD:
        return 'high'
    if risk_score >= MEDIUM_RISK_THRESHOLD:
        return 'medium'
    return 'low'


def predict_dropout_risk(student):
    """Predict dropout risk for a student.

    Accepts a ``Student`` row or a dict with the same field names. Returns a
    dict with ``risk_score``, ``risk_level`` and ``prediction_factors``; the
    demographic component counts towards the score but is not reported as a
    factor. The level is banded from the rounded score.
    """
    attendance_risk = calculate_attendance_risk(_get(student, 'attendance_percentage'))
    academic_risk = calculate_academic_risk(_get(student, 'cgpa'), _get(student, 'sgpa'))
    financial_risk = calculate_financial_risk(
        _get(student, 'fee_default', False),
        _get(student, 'scholarship', False),
        _get(student, 'family_income'),
    )
    behavioral_risk = calculate_behavioral_risk(_get(student, 'disciplinary_actions', 0))
    engagement_risk = calculate_engagement_risk(_get(student, 'extracurriculars', 0))
    demographic_risk = calculate_demographic_risk(
        distance_from_home=_get(student, 'distance_from_home'),
        hostel_accommodation=_get(student, 'hostel_accommodation', False),
        previous_education_gap=_get(student, 'previous_education_gap', False),
        semester=_get(student, 'semester'),
    )

    raw_score = (
        attendance_risk * WEIGHTS['attendance']
        + academic_risk * WEIGHTS['academic']
        + financial_risk * WEIGHTS['financial']
        + behavioral_risk * WEIGHTS['behavioral']
        + engagement_risk * WEIGHTS['engagement']
        + demographic_risk * WEIGHTS['demographic']
    )
    risk_score = round_half_up(raw_score)

    return {
        'risk_score': risk_score,
        'risk_level': get_risk_level(risk_score),
        'prediction_factors': {
            'attendance_impact': round_half_up(attendance_risk),
            'academic_impact': round_half_up(academic_risk),
            'financial_impact': round_half_up(financial_risk),
            'behavioral_impact': round_half_up(behavioral_risk),
            'engagement_impact': round_half_up(engagement_risk),
        },
    }


def explain_risk(student):
    """Plain-language summary of what drives a student's risk."""
    risk_score = _get(student, 'risk_score')
    if risk_score is None or not _get(student, 'prediction_factors'):
        return 'Risk analysis not available'

    attendance = _get(student, 'attendance_percentage')
    cgpa = _get(student, 'cgpa')
    disciplinary_actions = _get(student, 'disciplinary_actions', 0)

    factors = []
    if attendance < 75:
        factors.append(f'low attendance ({attendance}%)')
    if cgpa < 6.0:
        factors.append(f'low CGPA ({cgpa})')
    if _get(student, 'fee_default'):
        factors.append('fee default')
    if disciplinary_actions > 0:
        factors.append(f'{disciplinary_actions} disciplinary action(s)')
    if not _get(student, 'scholarship') and cgpa > 7.0:
        factors.append('no scholarship despite good grades')
    if _get(student, 'extracurriculars', 0) == 0:
        factors.append('no extracurricular activities')

    level = (_get(student, 'risk_level') or '').upper()
    percentage = round(risk_score * 100)
    if factors:
        return f"Risk: {level} ({percentage}%) due to {', '.join(factors)}."
    return f"Risk: {level} ({percentage}%) - performing well overall."


def get_intervention_strategy(risk_level):
    """Get intervention strategy based on risk level"""
    if risk_level == 'high':
        return "CRITICAL: Immediate counseling, financial aid assessment, parental notification"
    elif risk_level == 'medium':
        return "MODERATE: Academic counseling, tutoring, attendance monitoring"
    elif risk_level == 'low':
        return "LOW: Regular check-ins, progress monitoring"
    return "PENDING: Run risk prediction to get a recommendation"
