"""
Flat-file output for datasets and evaluation tables.

Every table is written as CSV without the index, with missing values as NA.
"""

import logging
import os

from . import config

logger = logging.getLogger(__name__)


def write_table(df, output_dir, filename, index=False):
    """
    Write one table as CSV.

    Args:
        df (pd.DataFrame): Table to write
        output_dir (str): Directory, created if needed
        filename (str): File name inside `output_dir`
        index (bool): Whether to keep the DataFrame index

    Returns:
        str: Path of the written file
    """
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    df.to_csv(path, index=index, na_rep=config.NA_REP)
    logger.info(f"Wrote {len(df)} rows to {path}")
    return path


def write_patient_data(df, output_dir):
    return write_table(df[config.PATIENT_COLUMNS], output_dir, config.PATIENT_DATA_FILE)


def write_risk_data(df, output_dir):
    columns = config.PATIENT_COLUMNS + ['risk_score', 'risk_group']
    return write_table(df[columns], output_dir, config.RISK_DATA_FILE)


def write_evaluation(report, output_dir):
    """
    Write the confusion matrix and its statistics.

    Args:
        report (EvaluationReport): Evaluation result
        output_dir (str): Directory for the three CSV files

    Returns:
        list[str]: Paths for the confusion matrix, per-class and overall tables
    """
    return [
        write_table(report.matrix.to_frame(), output_dir, config.CONFUSION_MATRIX_FILE),
        write_table(report.by_class, output_dir, config.CLASS_STATS_FILE),
        write_table(report.overall, output_dir, config.OVERALL_STATS_FILE),
    ]


def write_coefficients(coefficients, output_dir):
    return write_table(coefficients, output_dir, config.COEFFICIENTS_FILE, index=True)
