"""
Synthetic patient risk stratification.

Generates a synthetic admissions cohort, assigns rule-based risk groups,
and trains a multinomial logistic regression to predict them.
"""

from .errors import (
    RiskPipelineError,
    InvalidRecordError,
    SplitConfigurationError,
    ModelNotConvergedError,
    ModelNotFittedError,
)
from .risk_scoring import score, risk_group_for_score, add_risk_columns
from .data_generation import PatientRecord, generate_patient_data
from .splitting import stratified_split
from .classifier import RiskGroupClassifier
from .evaluation import evaluate
from .pipeline import RiskStratificationPipeline

__version__ = '0.1.0'
