import warnings
from datetime import date

import numpy as np
import pandas as pd
import pytest
from pydantic import ValidationError

from risk_stratification import config
from risk_stratification.data_generation import (
    PatientRecord,
    clean_patient_data,
    generate_patient_data,
    load_patient_data,
    validate_patient_data,
)
from risk_stratification.errors import InvalidRecordError


def test_generated_columns_and_size(patient_data):
    assert list(patient_data.columns) == config.PATIENT_COLUMNS
    assert len(patient_data) == 300
    assert list(patient_data['patient_ID']) == list(range(1, 301))


def test_generated_fields_stay_in_range(patient_data):
    assert patient_data['age'].between(18, 90).all()
    assert set(patient_data['gender']) <= set(config.GENDERS)
    assert set(patient_data['diagnosis']) <= set(config.DIAGNOSES)
    assert patient_data['treatment_cost'].between(1000, 10000).all()
    assert (patient_data['treatment_cost'].round(2) == patient_data['treatment_cost']).all()

    base = pd.Timestamp(config.BASE_ADMISSION_DATE)
    offsets = (patient_data['admission_date'] - base).dt.days
    assert offsets.between(0, 364).all()


def test_length_of_stay_matches_dates(patient_data):
    days = (patient_data['discharge_date'] - patient_data['admission_date']).dt.days
    assert (patient_data['length_of_stay'] == days).all()
    assert patient_data['length_of_stay'].between(1, 30).all()


def test_same_seed_same_cohort():
    first = generate_patient_data(300, np.random.default_rng(7))
    second = generate_patient_data(300, np.random.default_rng(7))
    pd.testing.assert_frame_equal(first, second)


def test_different_seed_different_cohort():
    first = generate_patient_data(300, np.random.default_rng(7))
    second = generate_patient_data(300, np.random.default_rng(8))
    assert not first.equals(second)


def test_generate_rejects_empty_cohort(rng):
    with pytest.raises(ValueError):
        generate_patient_data(0, rng)


def test_clean_is_noop_for_generated_data(patient_data):
    cleaned = clean_patient_data(patient_data)
    assert len(cleaned) == len(patient_data)
    assert cleaned['diagnosis'].dtype == 'category'
    assert cleaned['gender'].dtype == 'category'


def test_clean_drops_incomplete_rows(patient_data):
    broken = patient_data.copy()
    broken.loc[broken.index[:3], 'treatment_cost'] = np.nan
    assert len(clean_patient_data(broken)) == 297


def test_validate_generated_data(patient_data):
    records = validate_patient_data(clean_patient_data(patient_data))
    assert len(records) == 300
    assert all(isinstance(r, PatientRecord) for r in records)
    assert records[0].as_row()['patient_ID'] == 1


def test_validate_rejects_duplicate_ids(patient_data):
    broken = patient_data.copy()
    broken.loc[broken.index[1], 'patient_ID'] = 1
    with pytest.raises(InvalidRecordError, match='Duplicate'):
        validate_patient_data(broken)


def _record(**overrides):
    fields = dict(
        patient_ID=1, age=40, gender='female',
        admission_date=date(2023, 3, 1), discharge_date=date(2023, 3, 5),
        diagnosis='asthma', treatment_cost=2500.0, length_of_stay=4,
    )
    fields.update(overrides)
    return PatientRecord.from_row(fields)


def test_record_accepts_unknown_diagnosis():
    assert _record(diagnosis='influenza').diagnosis == 'influenza'


@pytest.mark.parametrize('overrides', [
    {'age': 17},
    {'age': 91},
    {'gender': 'unknown'},
    {'discharge_date': date(2023, 3, 1), 'length_of_stay': 0},
    {'length_of_stay': 9},
    {'treatment_cost': 0.0},
    {'patient_ID': 0},
    {'age': 'abc'},
    {'age': 89.6},
    {'admission_date': 'not-a-date'},
])
def test_record_invariants(overrides):
    with pytest.raises(InvalidRecordError):
        _record(**overrides)


def test_record_is_immutable():
    record = _record()
    with pytest.raises(ValidationError):
        record.age = 50


def test_load_round_trip(tmp_path, patient_data):
    path = tmp_path / 'patients.csv'
    patient_data.to_csv(path, index=False)
    loaded = load_patient_data(str(path))
    assert len(validate_patient_data(clean_patient_data(loaded))) == 300
    assert (loaded['length_of_stay'] == patient_data['length_of_stay']).all()


def test_load_requires_columns(tmp_path, patient_data):
    path = tmp_path / 'patients.csv'
    patient_data.drop(columns=['diagnosis']).to_csv(path, index=False)
    with pytest.raises(InvalidRecordError, match='diagnosis'):
        load_patient_data(str(path))


def test_record_accepts_csv_text():
    record = _record(age='45', admission_date='2023-03-01', discharge_date='2023-03-05')
    assert record.age == 45
    assert record.admission_date == date(2023, 3, 1)


def test_load_parses_iso_dates_without_inference(tmp_path, patient_data):
    path = tmp_path / 'patients.csv'
    patient_data.to_csv(path, index=False)
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        loaded = load_patient_data(str(path))
    assert pd.api.types.is_datetime64_any_dtype(loaded['admission_date'])
    assert (loaded['admission_date'] == patient_data['admission_date']).all()


@pytest.mark.parametrize('column, value', [
    ('age', 'abc'),
    ('age', '89.6'),
    ('admission_date', 'not-a-date'),
])
def test_clean_rejects_malformed_csv_values(tmp_path, patient_data, column, value):
    path = tmp_path / 'patients.csv'
    patient_data.to_csv(path, index=False)
    raw = pd.read_csv(path, dtype=str)
    raw.loc[5, column] = value
    raw.to_csv(path, index=False)
    with pytest.raises(InvalidRecordError, match='Patient 6'):
        clean_patient_data(load_patient_data(str(path)))


def test_clean_converts_numeric_text(patient_data):
    loaded = patient_data.astype({'age': str})
    cleaned = clean_patient_data(loaded)
    assert (cleaned['age'] == patient_data['age']).all()
    assert pd.api.types.is_datetime64_any_dtype(cleaned['admission_date'])
