"""
Model evaluation against the held-out test partition.

Builds a 3x3 confusion matrix (rows = predicted, columns = actual) and
derives one-vs-rest statistics for each risk group plus overall accuracy,
Cohen's kappa and the accompanying significance tests. Ratios with a zero
denominator are reported as NaN.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import cohen_kappa_score
from sklearn.metrics import confusion_matrix as sk_confusion_matrix

from . import config

logger = logging.getLogger(__name__)

CLASS_METRICS = [
    'Sensitivity', 'Specificity', 'Pos Pred Value', 'Neg Pred Value',
    'Precision', 'Recall', 'F1', 'Prevalence', 'Detection Rate',
    'Detection Prevalence', 'Balanced Accuracy',
]
OVERALL_METRICS = [
    'Accuracy', 'Kappa', 'AccuracyLower', 'AccuracyUpper',
    'AccuracyNull', 'AccuracyPValue', 'McnemarPValue',
]


def _ratio(numerator, denominator):
    return float(numerator) / denominator if denominator else float('nan')


@dataclass(frozen=True)
class ConfusionMatrix:
    """Counts of predicted (rows) against actual (columns) risk groups."""

    counts: pd.DataFrame

    @classmethod
    def from_labels(cls, predicted, actual, labels=config.RISK_GROUPS):
        """
        Tabulate aligned predicted and actual labels.

        Args:
            predicted (sequence): Predicted risk groups
            actual (sequence): True risk groups, same length and order
            labels (sequence): Class order for rows and columns

        Returns:
            ConfusionMatrix
        """
        predicted = np.asarray(predicted, dtype=object).astype(str)
        actual = np.asarray(actual, dtype=object).astype(str)
        if len(predicted) != len(actual):
            raise ValueError(
                f"predicted and actual must be the same length ({len(predicted)} != {len(actual)})"
            )
        if len(actual) == 0:
            raise ValueError("Cannot evaluate an empty test set")
        unknown = sorted((set(predicted) | set(actual)) - set(labels))
        if unknown:
            raise ValueError(f"Labels outside {list(labels)}: {unknown}")

        # scikit-learn tabulates actual x predicted
        table = sk_confusion_matrix(actual, predicted, labels=list(labels)).T
        counts = pd.DataFrame(
            table,
            index=pd.Index(labels, name='Predicted'),
            columns=pd.Index(labels, name='Actual'),
        )
        return cls(counts)

    @property
    def labels(self):
        return list(self.counts.index)

    @property
    def total(self):
        return int(self.counts.to_numpy().sum())

    @property
    def correct(self):
        return int(np.trace(self.counts.to_numpy()))

    def to_frame(self):
        """Long format with columns Predicted, Actual, Freq; Predicted varies fastest."""
        rows = [
            {'Predicted': predicted, 'Actual': actual, 'Freq': int(self.counts.loc[predicted, actual])}
            for actual in self.labels
            for predicted in self.labels
        ]
        return pd.DataFrame(rows, columns=['Predicted', 'Actual', 'Freq'])


def class_statistics(matrix):
    """
    One-vs-rest statistics for every class.

    Args:
        matrix (ConfusionMatrix): Evaluation counts

    Returns:
        pd.DataFrame: A `class` column ("Class: Low", ...) followed by the
        `CLASS_METRICS` columns
    """
    counts = matrix.counts.to_numpy()
    total = counts.sum()
    predicted_totals = counts.sum(axis=1)
    actual_totals = counts.sum(axis=0)

    rows = []
    for i, label in enumerate(matrix.labels):
        tp = counts[i, i]
        fp = predicted_totals[i] - tp
        fn = actual_totals[i] - tp
        tn = total - tp - fp - fn

        sensitivity = _ratio(tp, tp + fn)
        specificity = _ratio(tn, tn + fp)
        precision = _ratio(tp, tp + fp)
        f1 = _ratio(2 * precision * sensitivity, precision + sensitivity)

        rows.append({
            'class': f"Class: {label}",
            'Sensitivity': sensitivity,
            'Specificity': specificity,
            'Pos Pred Value': precision,
            'Neg Pred Value': _ratio(tn, tn + fn),
            'Precision': precision,
            'Recall': sensitivity,
            'F1': f1,
            'Prevalence': _ratio(tp + fn, total),
            'Detection Rate': _ratio(tp, total),
            'Detection Prevalence': _ratio(tp + fp, total),
            'Balanced Accuracy': (sensitivity + specificity) / 2,
        })
    return pd.DataFrame(rows, columns=['class'] + CLASS_METRICS)


def kappa(matrix):
    """
    Cohen's kappa: agreement corrected for chance.

    NaN when chance agreement is already perfect, i.e. every prediction and
    every actual label is the same single class.
    """
    frame = matrix.to_frame()
    predicted = np.repeat(frame['Predicted'].to_numpy(), frame['Freq'].to_numpy())
    actual = np.repeat(frame['Actual'].to_numpy(), frame['Freq'].to_numpy())
    if len(set(predicted) | set(actual)) < 2:
        return float('nan')
    return float(cohen_kappa_score(actual, predicted, labels=matrix.labels))


def mcnemar_p_value(matrix):
    """
    Bowker's test of symmetry for a square confusion matrix.

    NaN when any off-diagonal pair of cells is empty.
    """
    counts = matrix.counts.to_numpy().astype(float)
    k = counts.shape[0]
    statistic = 0.0
    for i in range(k):
        for j in range(i + 1, k):
            pair_total = counts[i, j] + counts[j, i]
            if pair_total == 0:
                return float('nan')
            statistic += (counts[i, j] - counts[j, i]) ** 2 / pair_total
    dof = k * (k - 1) // 2
    return float(stats.chi2.sf(statistic, dof))


def overall_statistics(matrix, confidence_level=0.95):
    """
    Overall accuracy statistics.

    Args:
        matrix (ConfusionMatrix): Evaluation counts
        confidence_level (float): Coverage of the exact accuracy interval

    Returns:
        pd.DataFrame: Columns Metric, Value in `OVERALL_METRICS` order
    """
    total = matrix.total
    correct = matrix.correct
    accuracy = correct / total

    interval = stats.binomtest(correct, total).proportion_ci(
        confidence_level=confidence_level, method='exact'
    )
    no_information_rate = float(matrix.counts.sum(axis=0).max()) / total
    accuracy_p_value = stats.binomtest(
        correct, total, p=no_information_rate, alternative='greater'
    ).pvalue

    values = {
        'Accuracy': accuracy,
        'Kappa': kappa(matrix),
        'AccuracyLower': float(interval.low),
        'AccuracyUpper': float(interval.high),
        'AccuracyNull': no_information_rate,
        'AccuracyPValue': float(accuracy_p_value),
        'McnemarPValue': mcnemar_p_value(matrix),
    }
    return pd.DataFrame({'Metric': OVERALL_METRICS, 'Value': [values[m] for m in OVERALL_METRICS]})


@dataclass(frozen=True)
class EvaluationReport:
    """Confusion matrix with its per-class and overall statistics."""

    matrix: ConfusionMatrix
    by_class: pd.DataFrame
    overall: pd.DataFrame

    @property
    def accuracy(self):
        return self.metric('Accuracy')

    @property
    def kappa(self):
        return self.metric('Kappa')

    def metric(self, name):
        return float(self.overall.set_index('Metric').loc[name, 'Value'])

    def as_dict(self):
        """JSON-friendly summary stored with the saved model."""
        by_class = self.by_class.set_index('class')
        return {
            'confusion_matrix': {
                predicted: {actual: int(n) for actual, n in row.items()}
                for predicted, row in self.matrix.counts.iterrows()
            },
            'overall': {
                row.Metric: (None if np.isnan(row.Value) else float(row.Value))
                for row in self.overall.itertuples()
            },
            'sensitivity': {
                name.replace('Class: ', ''): (None if np.isnan(v) else float(v))
                for name, v in by_class['Sensitivity'].items()
            },
            'specificity': {
                name.replace('Class: ', ''): (None if np.isnan(v) else float(v))
                for name, v in by_class['Specificity'].items()
            },
        }


def evaluate(predicted, actual, labels=config.RISK_GROUPS):
    """
    Evaluate predictions against the true risk groups.

    Args:
        predicted (sequence): Predicted risk groups
        actual (sequence): True risk groups aligned with `predicted`
        labels (sequence): Class order

    Returns:
        EvaluationReport
    """
    matrix = ConfusionMatrix.from_labels(predicted, actual, labels)
    report = EvaluationReport(
        matrix=matrix,
        by_class=class_statistics(matrix),
        overall=overall_statistics(matrix),
    )

    logger.info("Confusion Matrix (rows = predicted, columns = actual):\n%s", matrix.counts.to_string())
    logger.info(f"Accuracy: {report.accuracy:.3f}  Kappa: {report.kappa:.3f}")
    for row in report.by_class.itertuples(index=False):
        logger.info(
            f"  {row[0]:14s} sensitivity {row.Sensitivity:.3f}  specificity {row.Specificity:.3f}"
        )
    return report
