"""
Pipeline configuration.

Defaults for the synthetic cohort, the risk-scoring rule and the output
layout. Each run-level value can be overridden from the environment;
the command line overrides both.
"""

import os
from datetime import date

# Cohort generation
N_PATIENTS = int(os.environ.get('RISK_N_PATIENTS', 300))
RANDOM_SEED = int(os.environ.get('RISK_SEED', 42))
BASE_ADMISSION_DATE = date(2023, 1, 1)
ADMISSION_WINDOW_DAYS = 365
MAX_STAY_DAYS = 30
AGE_RANGE = (18, 90)
COST_RANGE = (1000.0, 10000.0)
GENDERS = ('male', 'female')
DIAGNOSES = ('COVID-19', 'pneumonia', 'bronchitis', 'asthma')

# Risk stratification thresholds
AGE_HIGH, AGE_MEDIUM = 75, 60
STAY_HIGH, STAY_MEDIUM = 14, 7
SEVERE_DIAGNOSES = ('COVID-19', 'pneumonia')
MODERATE_DIAGNOSES = ('bronchitis',)
GROUP_HIGH_SCORE, GROUP_MEDIUM_SCORE = 5, 3

# Ordered lowest to highest; also the tie-break priority for predictions
RISK_GROUPS = ('Low', 'Medium', 'High')

# Train/test split
SPLIT_RATIO = float(os.environ.get('RISK_SPLIT_RATIO', 0.8))

# Classifier
NUMERIC_FEATURES = ['age', 'length_of_stay']
CATEGORICAL_FEATURES = ['diagnosis']
MAX_ITER = 1000

# Outputs
OUTPUT_DIR = os.environ.get('RISK_OUTPUT_DIR', 'output')
LOG_LEVEL = os.environ.get('RISK_LOG_LEVEL', 'INFO')
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

PATIENT_DATA_FILE = 'patient_data.csv'
RISK_DATA_FILE = 'patient_data_with_risk_groups.csv'
CONFUSION_MATRIX_FILE = 'confusion_matrix.csv'
CLASS_STATS_FILE = 'confusion_matrix_class_statistics.csv'
OVERALL_STATS_FILE = 'confusion_matrix_overall_statistics.csv'
COEFFICIENTS_FILE = 'model_coefficients.csv'
MODEL_FILE = os.path.join('models', 'risk_group_model.pkl')
PLOTS_DIR = 'plots'
LOG_FILE = 'pipeline.log'
NA_REP = 'NA'
DATE_FORMAT = '%Y-%m-%d'

PATIENT_COLUMNS = [
    'patient_ID', 'age', 'gender', 'admission_date', 'discharge_date',
    'diagnosis', 'treatment_cost', 'length_of_stay'
]
