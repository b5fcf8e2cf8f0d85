"""
Application configuration, read from the environment (and a .env file).
"""

import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dropout-risk-dashboard-dev-key')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///retention.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Rows written per store call by the batch predictor and the uploader
    PREDICTION_BATCH_SIZE = int(os.getenv('PREDICTION_BATCH_SIZE', 50))
    INGEST_BATCH_SIZE = int(os.getenv('INGEST_BATCH_SIZE', 50))

    # Null out risk fields when a scoring attribute is edited
    INVALIDATE_SCORE_ON_EDIT = _env_flag('INVALIDATE_SCORE_ON_EDIT', False)

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
