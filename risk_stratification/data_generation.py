"""
Synthetic patient cohort generation, loading and preprocessing.

The generator draws every field from an explicitly passed
`numpy.random.Generator`, so a cohort is a pure function of
(n_patients, seed).
"""

import logging
from datetime import date

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from . import config
from .errors import InvalidRecordError

logger = logging.getLogger(__name__)


class PatientRecord(BaseModel):
    """One admission in the cohort."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    patient_id: int = Field(..., alias='patient_ID', ge=1)
    age: int
    gender: str
    admission_date: date
    discharge_date: date
    diagnosis: str
    treatment_cost: float = Field(..., gt=0)
    length_of_stay: int

    @field_validator('age')
    @classmethod
    def _age_ok(cls, v: int) -> int:
        low, high = config.AGE_RANGE
        if not low <= v <= high:
            raise ValueError(f"age must be {low}-{high}")
        return v

    @field_validator('gender')
    @classmethod
    def _gender_ok(cls, v: str) -> str:
        if v not in config.GENDERS:
            raise ValueError(f"gender must be one of {config.GENDERS}")
        return v

    @field_validator('admission_date', 'discharge_date', mode='before')
    @classmethod
    def _timestamp_to_date(cls, v):
        # dates parsed by pandas arrive as Timestamps; strings are parsed here
        if isinstance(v, pd.Timestamp):
            return v.date()
        return v

    @model_validator(mode='after')
    def _stay_matches_dates(self):
        days = (self.discharge_date - self.admission_date).days
        if days < 1:
            raise ValueError("discharge_date must be at least one day after admission_date")
        if self.length_of_stay != days:
            raise ValueError(
                f"length_of_stay {self.length_of_stay} does not match the {days}-day admission"
            )
        return self

    @classmethod
    def from_row(cls, row):
        """
        Build a record from a mapping keyed by the CSV column names.

        Raises:
            InvalidRecordError: A field is malformed or breaks an invariant
        """
        try:
            return cls.model_validate(row)
        except ValidationError as e:
            raise InvalidRecordError(f"Patient {row.get('patient_ID')} failed validation:\n{e}") from None

    def as_row(self):
        row = self.model_dump(by_alias=True)
        return {column: row[column] for column in config.PATIENT_COLUMNS}


def generate_patient_data(n_patients, rng):
    """
    Generate a synthetic admissions cohort.

    Args:
        n_patients (int): Number of patient records
        rng (np.random.Generator): Random source; the only source of randomness

    Returns:
        pd.DataFrame: One row per patient with the columns of
        `config.PATIENT_COLUMNS`
    """
    if n_patients < 1:
        raise ValueError(f"n_patients must be positive, got {n_patients}")

    logger.info(f"Generating {n_patients} synthetic patient records...")

    low_age, high_age = config.AGE_RANGE
    low_cost, high_cost = config.COST_RANGE

    admission_offsets = rng.integers(0, config.ADMISSION_WINDOW_DAYS, size=n_patients)
    stay_days = rng.integers(1, config.MAX_STAY_DAYS + 1, size=n_patients)

    admission_date = (
        pd.Timestamp(config.BASE_ADMISSION_DATE)
        + pd.to_timedelta(admission_offsets, unit='D')
    )
    discharge_date = admission_date + pd.to_timedelta(stay_days, unit='D')

    df = pd.DataFrame({
        'patient_ID': np.arange(1, n_patients + 1),
        'age': rng.integers(low_age, high_age + 1, size=n_patients),
        'gender': rng.choice(config.GENDERS, size=n_patients),
        'admission_date': admission_date,
        'discharge_date': discharge_date,
        'diagnosis': rng.choice(config.DIAGNOSES, size=n_patients),
        'treatment_cost': np.round(rng.uniform(low_cost, high_cost, size=n_patients), 2),
    })
    df['length_of_stay'] = (df['discharge_date'] - df['admission_date']).dt.days

    logger.info(f"Generated {len(df)} patient records with {len(df.columns)} fields")
    return df


def load_patient_data(filepath):
    """
    Load a patient table from CSV.

    Args:
        filepath (str): Path to a CSV with the `config.PATIENT_COLUMNS` columns

    Returns:
        pd.DataFrame: Loaded data; date columns that fail to parse are
        left as text for validation to reject
    """
    logger.info(f"Loading patient data from {filepath}...")
    df = pd.read_csv(
        filepath,
        parse_dates=['admission_date', 'discharge_date'],
        date_format=config.DATE_FORMAT,
    )

    missing = [col for col in config.PATIENT_COLUMNS if col not in df.columns]
    if missing:
        raise InvalidRecordError(f"{filepath} is missing required columns: {missing}")

    logger.info(f"Loaded {len(df)} patient records with {len(df.columns)} columns")
    return df


def clean_patient_data(df):
    """
    Drop incomplete rows, validate the rest and fix column types.

    Generated data has no missing values, so the drop is a no-op there.
    Values are rebuilt from the validated records, so numeric strings from
    a CSV become numbers and only the `config.PATIENT_COLUMNS` columns remain.

    Args:
        df (pd.DataFrame): Raw patient data

    Returns:
        pd.DataFrame: Cleaned copy with categorical gender/diagnosis and
        datetime admission/discharge dates

    Raises:
        InvalidRecordError: A remaining row is malformed or breaks an invariant
    """
    n_missing = int(df.isnull().sum().sum())
    logger.info(f"Missing values: {n_missing}")

    df = df.dropna()
    if n_missing:
        logger.warning(f"Dropped incomplete rows; {len(df)} patient records remain")

    records = validate_patient_data(df)
    df = pd.DataFrame([r.as_row() for r in records], index=df.index, columns=config.PATIENT_COLUMNS)

    df['gender'] = df['gender'].astype('category')
    df['diagnosis'] = df['diagnosis'].astype('category')
    df['admission_date'] = pd.to_datetime(df['admission_date'])
    df['discharge_date'] = pd.to_datetime(df['discharge_date'])
    return df


def validate_patient_data(df):
    """
    Check every row against the patient record invariants.

    Args:
        df (pd.DataFrame): Patient data

    Returns:
        list[PatientRecord]: One validated record per row

    Raises:
        InvalidRecordError: A row breaks an invariant, or patient IDs repeat
    """
    duplicated = df['patient_ID'][df['patient_ID'].duplicated()]
    if not duplicated.empty:
        raise InvalidRecordError(f"Duplicate patient_ID values: {sorted(duplicated.unique())[:10]}")

    records = [PatientRecord.from_row(row) for row in df[config.PATIENT_COLUMNS].to_dict('records')]
    logger.info(f"Validated {len(records)} patient records")
    return records
