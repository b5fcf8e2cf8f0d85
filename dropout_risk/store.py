"""
Record store backed by the Flask-SQLAlchemy session.

Reads raise StoreReadFailure, writes raise StoreWriteFailure after rolling
the session back. Each write call is its own commit.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from .errors import StoreReadFailure, StoreWriteFailure
from .models import db, Student

logger = logging.getLogger(__name__)


class StudentStore:

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def count_unscored(self):
        try:
            return self.session.query(Student).filter(Student.risk_score.is_(None)).count()
        except SQLAlchemyError as e:
            logger.error("Error counting unscored students: %s", e)
            raise StoreReadFailure("Error counting unscored students") from e

    def select_unscored(self):
        try:
            return self.session.query(Student).filter(Student.risk_score.is_(None)).all()
        except SQLAlchemyError as e:
            logger.error("Error fetching students: %s", e)
            raise StoreReadFailure("Error fetching students") from e

    def select_by_ids(self, student_ids):
        try:
            return self.session.query(Student).filter(Student.id.in_(list(student_ids))).all()
        except SQLAlchemyError as e:
            logger.error("Error fetching specific students: %s", e)
            raise StoreReadFailure("Error fetching specific students") from e

    def upsert_predictions(self, updates):
        """Write a batch of {id, risk_score, risk_level, prediction_factors} rows."""
        try:
            for update in updates:
                values = {key: value for key, value in update.items() if key != 'id'}
                self.session.query(Student).filter(Student.id == update['id']).update(
                    values, synchronize_session=False)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Error updating batch: %s", e)
            raise StoreWriteFailure("Error updating batch") from e

    def insert_students(self, payloads):
        try:
            self.session.add_all([Student(**payload) for payload in payloads])
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Batch insert error: %s", e)
            raise StoreWriteFailure("Batch insert error") from e
