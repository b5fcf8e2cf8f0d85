"""
Batch risk prediction over the student population.

Best effort and forward-only: records are scored independently, results are
written in sequential batches, and a failed batch is logged and dropped
without retrying it or undoing earlier batches.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .errors import InvalidRequest, StoreWriteFailure
from .risk_model import predict_dropout_risk

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


@dataclass
class PredictionSummary:
    total_count: int
    processed_count: int
    failed_ids: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'message': f'Successfully processed {self.processed_count} students',
            'processedCount': self.processed_count,
            'totalCount': self.total_count,
        }


def _chunks(items, size):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def predict_batch(store, process_new_students: bool = False,
                  student_ids: Optional[Sequence[str]] = None,
                  batch_size: int = DEFAULT_BATCH_SIZE) -> PredictionSummary:
    """Score the selected students and persist the results.

    Args:
        store: record store providing ``select_unscored``, ``select_by_ids``
            and ``upsert_predictions``
        process_new_students: select every student with no risk score
        student_ids: explicit list of student ids, used when
            ``process_new_students`` is false
        batch_size: number of updates written per store call

    Raises:
        InvalidRequest: neither selection mode was given
        StoreReadFailure: the selection query failed
        StoreWriteFailure: the run had a single batch and writing it failed
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")

    if process_new_students:
        students = store.select_unscored()
    elif student_ids:
        students = store.select_by_ids(student_ids)
    else:
        raise InvalidRequest()

    logger.info("Processing %d students for risk prediction", len(students))

    updates = []
    failed_ids = []
    for student in students:
        try:
            prediction = predict_dropout_risk(student)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping student %s, could not score stored data: %s", student.id, e)
            failed_ids.append(student.id)
            continue
        updates.append({'id': student.id, **prediction})

    updated_count = 0
    batch_count = 0
    failed_batches = 0
    for batch in _chunks(updates, batch_size):
        batch_count += 1
        try:
            store.upsert_predictions(batch)
        except StoreWriteFailure as e:
            logger.error("Error updating batch of %d students: %s", len(batch), e)
            failed_batches += 1
            failed_ids.extend(update['id'] for update in batch)
            continue
        updated_count += len(batch)

    if batch_count == 1 and failed_batches == 1:
        raise StoreWriteFailure("Failed to save risk predictions")

    logger.info("Updated %d students with risk predictions", updated_count)
    return PredictionSummary(
        total_count=len(students),
        processed_count=updated_count,
        failed_ids=failed_ids,
    )
