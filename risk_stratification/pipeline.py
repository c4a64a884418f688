"""
Patient Risk Stratification Pipeline

Generates (or loads) an admissions cohort, assigns rule-based risk groups,
trains a multinomial logistic regression to predict those groups from
age, length of stay and diagnosis, and evaluates it on a stratified
held-out test set. All tables are written as CSV files.

Usage:
    python -m risk_stratification --seed 42 --output-dir output
"""

import argparse
import logging
import os
import sys

import numpy as np

from . import config, eda, reporting
from .classifier import RiskGroupClassifier
from .data_generation import (
    clean_patient_data,
    generate_patient_data,
    load_patient_data,
)
from .errors import RiskPipelineError
from .evaluation import evaluate
from .risk_scoring import add_risk_columns
from .splitting import stratified_split

logger = logging.getLogger(__name__)


def _banner(title):
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


class RiskStratificationPipeline:
    """
    End-to-end risk stratification workflow.

    Each stage takes a table and returns a new one; the seed is turned into
    explicit random generators for the generation and split stages, so a run
    is reproducible from (n_patients, seed, split_ratio) alone.
    """

    def __init__(self, n_patients=config.N_PATIENTS, seed=config.RANDOM_SEED,
                 split_ratio=config.SPLIT_RATIO, output_dir=config.OUTPUT_DIR,
                 make_plots=True):
        """
        Args:
            n_patients (int): Cohort size when generating data
            seed (int): Seed for generation, splitting and the solver
            split_ratio (float): Share of each risk group used for training
            output_dir (str): Directory for every output file
            make_plots (bool): Whether to write the exploratory plots
        """
        if n_patients < 1:
            raise ValueError(f"n_patients must be positive, got {n_patients}")
        self.n_patients = n_patients
        self.seed = seed
        self.split_ratio = split_ratio
        self.output_dir = output_dir
        self.make_plots = make_plots
        self.classifier = RiskGroupClassifier(random_state=seed)
        self.outputs = []

    def generate_data(self):
        """Generate the synthetic cohort and write it out."""
        _banner("SYNTHETIC DATA GENERATION")
        df = generate_patient_data(self.n_patients, np.random.default_rng(self.seed))
        self.outputs.append(reporting.write_patient_data(df, self.output_dir))
        return df

    def load_data(self, filepath):
        """Load an existing cohort instead of generating one."""
        _banner("LOADING PATIENT DATA")
        return load_patient_data(filepath)

    def preprocess_data(self, df):
        """
        Clean and validate the cohort.

        Returns:
            pd.DataFrame: Cleaned data; every row satisfies the patient
            record invariants
        """
        _banner("PREPROCESSING")
        df = clean_patient_data(df)
        eda.summarize(df)
        return df

    def stratify_risk(self, df):
        """Add risk_score / risk_group and write the augmented dataset."""
        _banner("RISK STRATIFICATION")
        scored = add_risk_columns(df)
        self.outputs.append(reporting.write_risk_data(scored, self.output_dir))
        if self.make_plots:
            self.outputs.extend(
                eda.write_cohort_plots(scored, os.path.join(self.output_dir, config.PLOTS_DIR))
            )
        return scored

    def split_data(self, df):
        """
        Stratified train/test split.

        Returns:
            tuple: (train, test)
        """
        _banner("DATA SPLITTING")
        return stratified_split(df, self.split_ratio, np.random.default_rng(self.seed))

    def train_model(self, train):
        """Fit the classifier and write its coefficients."""
        _banner("MODEL TRAINING")
        self.classifier.fit(train)
        coefficients = self.classifier.coefficient_table()
        logger.info("Coefficients (log-odds vs Low):\n%s", coefficients.round(4).to_string())
        self.outputs.append(reporting.write_coefficients(coefficients, self.output_dir))
        return self.classifier

    def evaluate_model(self, test):
        """
        Predict the test partition and evaluate against its risk groups.

        Returns:
            EvaluationReport
        """
        _banner("MODEL EVALUATION ON TEST SET")
        predictions = self.classifier.predict(test)
        report = evaluate(predictions, test['risk_group'])
        self.classifier.performance_metrics = report.as_dict()

        self.outputs.extend(reporting.write_evaluation(report, self.output_dir))
        if self.make_plots:
            self.outputs.append(eda.plot_confusion_matrix(
                report.matrix,
                os.path.join(self.output_dir, config.PLOTS_DIR, 'confusion_matrix.png'),
            ))
        return report

    def save_model(self):
        model_path = os.path.join(self.output_dir, config.MODEL_FILE)
        metadata_path = self.classifier.save(model_path)
        self.outputs.extend([model_path, metadata_path])
        return model_path

    def run(self, input_path=None):
        """
        Execute every stage in order.

        Args:
            input_path (str): Optional patient CSV to use instead of
                generating a cohort

        Returns:
            dict: data, train, test, classifier, report and the list of
            written output files
        """
        self.outputs = []
        raw = self.load_data(input_path) if input_path else self.generate_data()
        data = self.stratify_risk(self.preprocess_data(raw))
        train, test = self.split_data(data)
        self.train_model(train)
        report = self.evaluate_model(test)
        self.save_model()

        _banner("PIPELINE COMPLETE")
        logger.info(f"Accuracy: {report.accuracy:.3f}  Kappa: {report.kappa:.3f}")
        logger.info(f"{len(self.outputs)} files written to {self.output_dir}")

        return {
            'data': data,
            'train': train,
            'test': test,
            'classifier': self.classifier,
            'report': report,
            'outputs': list(self.outputs),
        }


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='risk_stratification',
        description='Synthetic patient risk stratification and risk group classification',
    )
    parser.add_argument('--n-patients', type=int, default=config.N_PATIENTS,
                        help='number of synthetic patients to generate')
    parser.add_argument('--seed', type=int, default=config.RANDOM_SEED,
                        help='random seed for generation, splitting and fitting')
    parser.add_argument('--split-ratio', type=float, default=config.SPLIT_RATIO,
                        help='share of each risk group used for training')
    parser.add_argument('--output-dir', type=str, default=config.OUTPUT_DIR,
                        help='directory for CSV, model and plot outputs')
    parser.add_argument('--input', type=str, default=None,
                        help='existing patient CSV to score instead of generating data')
    parser.add_argument('--no-plots', action='store_true',
                        help='skip the exploratory plots')
    parser.add_argument('--log-level', type=str, default=config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    args = parser.parse_args(argv)
    if args.n_patients < 1:
        parser.error('--n-patients must be positive')
    if not 0 < args.split_ratio < 1:
        parser.error('--split-ratio must be between 0 and 1')
    return args


def configure_logging(level, output_dir=None):
    handlers = [logging.StreamHandler()]
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(output_dir, config.LOG_FILE)))
    logging.basicConfig(level=level, format=config.LOG_FORMAT, handlers=handlers, force=True)


def main(argv=None):
    """Command-line entry point; returns the process exit status."""
    args = parse_args(argv)
    configure_logging(args.log_level, args.output_dir)

    try:
        pipeline = RiskStratificationPipeline(
            n_patients=args.n_patients,
            seed=args.seed,
            split_ratio=args.split_ratio,
            output_dir=args.output_dir,
            make_plots=not args.no_plots,
        )
        pipeline.run(input_path=args.input)
    except RiskPipelineError as e:
        logger.error(f"Pipeline failed: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
