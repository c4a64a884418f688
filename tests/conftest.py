import matplotlib

matplotlib.use('Agg')

import numpy as np
import pytest

from risk_stratification.data_generation import generate_patient_data
from risk_stratification.risk_scoring import add_risk_columns
from risk_stratification.splitting import stratified_split


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def patient_data():
    return generate_patient_data(300, np.random.default_rng(42))


@pytest.fixture
def scored_data(patient_data):
    return add_risk_columns(patient_data)


@pytest.fixture
def split(scored_data):
    return stratified_split(scored_data, 0.8, np.random.default_rng(42))
