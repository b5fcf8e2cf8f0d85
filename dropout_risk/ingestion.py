"""
Student CSV ingestion.

Turns an uploaded CSV into Student insert payloads, stores them and kicks
off risk prediction for the new (unscored) records.
"""

import csv
import logging
import math

from .errors import EmptyFile, MalformedRow, NoValidRecords, StoreWriteFailure, RiskDashboardError
from .models import GENDERS
from .predictor import predict_batch

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('name', 'email', 'student_id', 'department')

INT_FIELDS = ('semester', 'disciplinary_actions', 'extracurriculars')
FLOAT_FIELDS = ('attendance_percentage', 'cgpa', 'sgpa', 'family_income', 'distance_from_home')
BOOL_FIELDS = ('fee_default', 'scholarship', 'hostel_accommodation', 'previous_education_gap')
TEXT_FIELDS = REQUIRED_FIELDS + ('gender',)

# Recognised header spellings (lower-cased) -> Student column
HEADER_ALIASES = {
    'name': 'name',
    'email': 'email',
    'student_id': 'student_id',
    'studentid': 'student_id',
    'department': 'department',
    'semester': 'semester',
    'gender': 'gender',
    'attendance': 'attendance_percentage',
    'attendance_percentage': 'attendance_percentage',
    'cgpa': 'cgpa',
    'sgpa': 'sgpa',
    'fee_default': 'fee_default',
    'feedefault': 'fee_default',
    'disciplinary_actions': 'disciplinary_actions',
    'disciplinaryactions': 'disciplinary_actions',
    'scholarship': 'scholarship',
    'extracurriculars': 'extracurriculars',
    'family_income': 'family_income',
    'familyincome': 'family_income',
    'distance_from_home': 'distance_from_home',
    'distancefromhome': 'distance_from_home',
    'hostel_accommodation': 'hostel_accommodation',
    'hostelaccommodation': 'hostel_accommodation',
    'previous_education_gap': 'previous_education_gap',
    'previouseducationgap': 'previous_education_gap',
}

TRUE_VALUES = ('true', 'yes', '1')

# Inclusive (low, high) bounds matching the students table CHECK constraints
FIELD_RANGES = {
    'semester': (1, None),
    'attendance_percentage': (0, 100),
    'cgpa': (0, 10),
    'sgpa': (0, 10),
    'disciplinary_actions': (0, None),
    'extracurriculars': (0, None),
}


def _validate_aliases():
    known = set(TEXT_FIELDS + INT_FIELDS + FLOAT_FIELDS + BOOL_FIELDS)
    unknown = set(HEADER_ALIASES.values()) - known
    if unknown:
        raise RuntimeError(f"Header aliases map to unknown fields: {sorted(unknown)}")
    unmapped = known - set(HEADER_ALIASES.values())
    if unmapped:
        raise RuntimeError(f"Fields without a header alias: {sorted(unmapped)}")


_validate_aliases()


def parse_float(value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_int(value):
    return int(parse_float(value))


def parse_bool(value):
    return value.strip().lower() in TRUE_VALUES


def parse_gender(value):
    value = value.lower()
    return value if value in GENDERS else 'other'


def convert_value(field_name, value):
    if field_name in INT_FIELDS:
        return parse_int(value)
    if field_name in FLOAT_FIELDS:
        return parse_float(value)
    if field_name in BOOL_FIELDS:
        return parse_bool(value)
    if field_name == 'gender':
        return parse_gender(value)
    return value


def build_payload(headers, values, line_number):
    """Map one CSV row onto Student fields.

    Raises MalformedRow when a required field is missing or empty, or when a
    numeric value falls outside the range the students table accepts.
    """
    payload = {}
    for header, value in zip(headers, values):
        field_name = HEADER_ALIASES.get(header)
        if field_name and value:
            payload[field_name] = convert_value(field_name, value)

    missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
    if missing:
        raise MalformedRow(line_number, f"Row {line_number} is missing {', '.join(missing)}")

    for name, (low, high) in FIELD_RANGES.items():
        value = payload.get(name)
        if value is None:
            continue
        if value < low or (high is not None and value > high):
            raise MalformedRow(line_number, f"Row {line_number} has {name} out of range: {value}")
    return payload


def normalize_rows(lines):
    """Yield validated Student payloads from CSV text lines.

    Blank lines are ignored. Rows shorter than the header, rows missing a
    required field and rows with out-of-range numbers are dropped. Single
    pass over ``lines``.
    """
    rows = csv.reader(line for line in lines if line.strip())
    try:
        header_row = next(rows)
    except StopIteration:
        raise EmptyFile() from None
    headers = [header.strip().lower() for header in header_row]

    seen_data_row = False
    for values in rows:
        seen_data_row = True
        line_number = rows.line_num
        if len(values) < len(headers):
            logger.debug("Skipping row %d: %d fields for %d headers", line_number, len(values), len(headers))
            continue
        values = [value.strip() for value in values]
        try:
            yield build_payload(headers, values, line_number)
        except MalformedRow as e:
            logger.warning("Dropping row: %s", e.message)

    if not seen_data_row:
        raise EmptyFile()


def ingest_upload(store, content, batch_size=50, prediction_batch_size=50):
    """Insert the students found in ``content`` and score the new records.

    Returns a summary dict. Failed insert batches are logged and skipped; a
    failed prediction run is logged and does not fail the upload.
    """
    students = list(normalize_rows(content.splitlines()))
    if not students:
        raise NoValidRecords()

    logger.info("Processing %d student records", len(students))

    inserted_count = 0
    for start in range(0, len(students), batch_size):
        batch = students[start:start + batch_size]
        try:
            store.insert_students(batch)
        except StoreWriteFailure as e:
            logger.error("Batch insert error: %s", e)
            continue
        inserted_count += len(batch)

    prediction = None
    try:
        prediction = predict_batch(store, process_new_students=True,
                                   batch_size=prediction_batch_size).to_dict()
    except RiskDashboardError as e:
        logger.error("Risk prediction after upload failed: %s", e)

    return {
        'message': f'Successfully uploaded and processed {inserted_count} student records!',
        'insertedCount': inserted_count,
        'totalCount': len(students),
        'prediction': prediction,
    }
