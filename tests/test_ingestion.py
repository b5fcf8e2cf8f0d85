import pytest

from dropout_risk.errors import EmptyFile, NoValidRecords, StoreReadFailure, StoreWriteFailure
from dropout_risk.ingestion import HEADER_ALIASES, normalize_rows, ingest_upload, parse_bool, parse_int, parse_float

HEADER = "Name,Email,StudentID,Department,Semester,Gender,Attendance,CGPA,SGPA,Fee_Default,Scholarship,Extracurriculars"


def rows(*lines):
    return list(normalize_rows([HEADER, *lines]))


def test_maps_headers_and_converts_types():
    [payload] = rows("Asha Rao,asha@uni.edu,S001,CSE,5,Female,85.5,7.2,7.8,No,Yes,3")

    assert payload == {
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
        'scholarship': True,
        'extracurriculars': 3,
    }


def test_long_header_spellings_are_recognised():
    lines = [
        "name,email,student_id,department,attendance_percentage,family_income,distance_from_home,"
        "hostel_accommodation,previous_education_gap,disciplinary_actions,unknown_column",
        "Ben,ben@uni.edu,S002,ECE,91,250000,620,true,1,2,whatever",
    ]
    [payload] = normalize_rows(lines)

    assert payload['attendance_percentage'] == 91.0
    assert payload['family_income'] == 250000.0
    assert payload['distance_from_home'] == 620.0
    assert payload['hostel_accommodation'] is True
    assert payload['previous_education_gap'] is True
    assert payload['disciplinary_actions'] == 2
    assert 'unknown_column' not in payload


def test_header_matching_ignores_case_and_spacing():
    [payload] = normalize_rows([" NAME , EMAIL , STUDENTID , DEPARTMENT ", "Cara,cara@uni.edu,S003,ME"])
    assert payload == {'name': 'Cara', 'email': 'cara@uni.edu', 'student_id': 'S003', 'department': 'ME'}


def test_row_with_empty_name_is_dropped():
    payloads = rows(
        ",nobody@uni.edu,S004,CSE,5,male,90,8,8,no,yes,2",
        "Dev,dev@uni.edu,S005,CSE,5,male,90,8,8,no,yes,2",
    )
    assert [p['student_id'] for p in payloads] == ['S005']


@pytest.mark.parametrize('missing_index', [1, 2, 3])
def test_rows_missing_required_fields_are_dropped(missing_index):
    values = ["Eli", "eli@uni.edu", "S006", "CSE", "4", "male", "80", "7", "7", "no", "no", "1"]
    values[missing_index] = ""
    assert rows(",".join(values)) == []


def test_short_rows_are_skipped():
    assert rows("Fay,fay@uni.edu,S007,CSE") == []


def test_blank_lines_are_ignored():
    payloads = list(normalize_rows(["", HEADER, "   ", "Gus,gus@uni.edu,S008,CSE,2,male,70,6,6,no,no,0", ""]))
    assert len(payloads) == 1


def test_unparseable_numbers_fall_back_to_zero():
    [payload] = rows("Hal,hal@uni.edu,S009,CSE,4,male,n/a,abc,7,no,no,lots")
    assert payload['attendance_percentage'] == 0.0
    assert payload['cgpa'] == 0.0
    assert payload['extracurriculars'] == 0


@pytest.mark.parametrize('semester, attendance, cgpa, extracurriculars', [
    ('five', '80', '7', '1'),
    ('0', '80', '7', '1'),
    ('4', '101', '7', '1'),
    ('4', '80', '10.5', '1'),
    ('4', '80', '7', '-2'),
])
def test_rows_with_out_of_range_numbers_are_dropped(semester, attendance, cgpa, extracurriculars):
    bad = f"Lee,lee@uni.edu,S014,CSE,{semester},male,{attendance},{cgpa},7,no,no,{extracurriculars}"
    good = "Mo,mo@uni.edu,S015,CSE,2,male,90,8,8,no,yes,2"

    payloads = rows(bad, good)

    assert [payload['student_id'] for payload in payloads] == ['S015']


def test_unknown_gender_becomes_other():
    [payload] = rows("Ivy,ivy@uni.edu,S010,CSE,3,nonbinary,88,7,7,no,no,1")
    assert payload['gender'] == 'other'


@pytest.mark.parametrize('value, expected', [
    ('Yes', True), ('TRUE', True), ('1', True), ('yes', True),
    ('0', False), ('no', False), ('false', False), ('y', False), ('', False),
])
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected


def test_numeric_parsers():
    assert parse_int('7') == 7
    assert parse_int('7.9') == 7
    assert parse_int('x') == 0
    assert parse_float('85.25') == 85.25
    assert parse_float('') == 0.0


def test_quoted_values_keep_commas():
    [payload] = rows('"Rao, Asha",asha@uni.edu,S011,"Computer Science, Honours",5,female,85,7,7,no,yes,3')
    assert payload['name'] == 'Rao, Asha'
    assert payload['department'] == 'Computer Science, Honours'


def test_empty_upload_raises():
    with pytest.raises(EmptyFile):
        list(normalize_rows([]))


def test_header_only_upload_raises():
    with pytest.raises(EmptyFile):
        list(normalize_rows([HEADER, "  "]))


def test_rows_are_produced_lazily():
    consumed = []

    def lines():
        for line in [HEADER, "Jo,jo@uni.edu,S012,CSE,1,male,90,9,9,no,yes,3",
                     "Kai,kai@uni.edu,S013,CSE,1,male,90,9,9,no,yes,3"]:
            consumed.append(line)
            yield line

    payloads = normalize_rows(lines())
    first = next(payloads)
    assert first['student_id'] == 'S012'
    assert len(consumed) == 2


def test_every_alias_targets_a_student_column():
    from dropout_risk.models import Student
    columns = set(Student.__table__.columns.keys())
    assert set(HEADER_ALIASES.values()) <= columns


class RecordingStore:

    def __init__(self, fail_insert_batches=(), fail_reads=False):
        self.inserted = []
        self.insert_calls = 0
        self.fail_insert_batches = set(fail_insert_batches)
        self.fail_reads = fail_reads

    def insert_students(self, payloads):
        call = self.insert_calls
        self.insert_calls += 1
        if call in self.fail_insert_batches:
            raise StoreWriteFailure('duplicate email')
        self.inserted.extend(payloads)

    def select_unscored(self):
        if self.fail_reads:
            raise StoreReadFailure('timeout')
        return []

    def upsert_predictions(self, updates):
        pass


def csv_text(count):
    lines = [HEADER]
    for n in range(count):
        lines.append(f"Student {n},s{n}@uni.edu,S{n:03d},CSE,3,male,80,7,7,no,yes,1")
    return "\n".join(lines)


def test_ingest_upload_inserts_in_batches():
    store = RecordingStore()

    result = ingest_upload(store, csv_text(5), batch_size=2)

    assert store.insert_calls == 3
    assert result['insertedCount'] == 5
    assert result['totalCount'] == 5
    assert result['prediction'] == {'message': 'Successfully processed 0 students',
                                    'processedCount': 0, 'totalCount': 0}


def test_out_of_range_row_does_not_sink_its_batch():
    store = RecordingStore()
    content = csv_text(2) + "\nNed,ned@uni.edu,S099,CSE,0,male,80,7,7,no,yes,1"

    result = ingest_upload(store, content, batch_size=50)

    assert store.insert_calls == 1
    assert result['insertedCount'] == 2
    assert result['totalCount'] == 2


def test_ingest_upload_skips_failed_insert_batch():
    store = RecordingStore(fail_insert_batches={0})

    result = ingest_upload(store, csv_text(3), batch_size=2)

    assert result['insertedCount'] == 1
    assert result['totalCount'] == 3


def test_prediction_failure_does_not_fail_upload():
    store = RecordingStore(fail_reads=True)

    result = ingest_upload(store, csv_text(2))

    assert result['insertedCount'] == 2
    assert result['prediction'] is None


def test_upload_without_valid_rows_raises():
    with pytest.raises(NoValidRecords):
        ingest_upload(RecordingStore(), HEADER + "\n,,,,,,,,,,,\n")
