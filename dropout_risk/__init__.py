"""
Student Dropout Risk Dashboard - Backend Package
"""

from .app import create_app
from .models import db, User, Student, InterventionNote
from .risk_model import predict_dropout_risk, get_intervention_strategy
from .predictor import predict_batch, PredictionSummary
