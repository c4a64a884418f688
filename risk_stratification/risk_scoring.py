"""
Rule-based risk stratification.

A patient's risk score is the sum of three bands, each worth 0-2 points:

    age              >= 75 -> 2, >= 60 -> 1, else 0
    diagnosis        COVID-19 / pneumonia -> 2, bronchitis -> 1, else 0
    length of stay   >= 14 -> 2, >= 7 -> 1, else 0

The score (0-6) maps to a risk group: >= 5 High, >= 3 Medium, else Low.
Diagnoses outside the known set fall into the 0-point band.
"""

import logging

import numpy as np
import pandas as pd

from . import config

logger = logging.getLogger(__name__)


def age_band(age):
    """Points contributed by patient age."""
    if age >= config.AGE_HIGH:
        return 2
    if age >= config.AGE_MEDIUM:
        return 1
    return 0


def diagnosis_band(diagnosis):
    """Points contributed by the primary diagnosis (unknown diagnoses score 0)."""
    if diagnosis in config.SEVERE_DIAGNOSES:
        return 2
    if diagnosis in config.MODERATE_DIAGNOSES:
        return 1
    return 0


def stay_band(length_of_stay):
    """Points contributed by length of stay in days."""
    if length_of_stay >= config.STAY_HIGH:
        return 2
    if length_of_stay >= config.STAY_MEDIUM:
        return 1
    return 0


def risk_group_for_score(risk_score):
    """
    Map a risk score to its risk group.

    Args:
        risk_score (int): Sum of the three risk bands (0-6)

    Returns:
        str: 'Low', 'Medium' or 'High'
    """
    if risk_score >= config.GROUP_HIGH_SCORE:
        return 'High'
    if risk_score >= config.GROUP_MEDIUM_SCORE:
        return 'Medium'
    return 'Low'


def score(age, diagnosis, length_of_stay):
    """
    Compute the risk score and risk group for a single patient.

    Args:
        age (int): Age in years
        diagnosis (str): Primary diagnosis
        length_of_stay (int): Days between admission and discharge

    Returns:
        tuple: (risk_score, risk_group)
    """
    risk_score = age_band(age) + diagnosis_band(diagnosis) + stay_band(length_of_stay)
    return risk_score, risk_group_for_score(risk_score)


def add_risk_columns(df):
    """
    Return a copy of the patient table with `risk_score` and `risk_group`.

    Vectorised equivalent of `score` applied to every row. `risk_group` is
    an ordered categorical (Low < Medium < High).

    Args:
        df (pd.DataFrame): Patient data with age, diagnosis, length_of_stay

    Returns:
        pd.DataFrame: Copy of `df` with the two risk columns appended
    """
    df = df.copy()

    age = df['age']
    stay = df['length_of_stay']
    diagnosis = df['diagnosis'].astype(str)

    unknown = ~diagnosis.isin(config.DIAGNOSES)
    if unknown.any():
        logger.warning(
            f"{int(unknown.sum())} rows have an unrecognised diagnosis "
            f"{sorted(diagnosis[unknown].unique())}; scoring them in the 0-point band"
        )

    age_points = np.select(
        [age >= config.AGE_HIGH, age >= config.AGE_MEDIUM], [2, 1], default=0
    )
    diagnosis_points = np.select(
        [diagnosis.isin(config.SEVERE_DIAGNOSES), diagnosis.isin(config.MODERATE_DIAGNOSES)],
        [2, 1], default=0
    )
    stay_points = np.select(
        [stay >= config.STAY_HIGH, stay >= config.STAY_MEDIUM], [2, 1], default=0
    )

    df['risk_score'] = (age_points + diagnosis_points + stay_points).astype(int)

    groups = np.select(
        [df['risk_score'] >= config.GROUP_HIGH_SCORE, df['risk_score'] >= config.GROUP_MEDIUM_SCORE],
        ['High', 'Medium'], default='Low'
    )
    df['risk_group'] = pd.Categorical(groups, categories=config.RISK_GROUPS, ordered=True)

    counts = df['risk_group'].value_counts().reindex(config.RISK_GROUPS)
    logger.info(
        "Risk groups: " + ", ".join(f"{group}={count}" for group, count in counts.items())
    )
    return df
