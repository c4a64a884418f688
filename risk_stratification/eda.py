"""
Exploratory summaries and plots for the patient cohort.

Plots are written as PNG files; none are shown interactively.
"""

import logging
import os

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from . import config

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = ['age', 'treatment_cost', 'length_of_stay']


def summarize(df):
    """
    Summary tables for the cohort.

    Args:
        df (pd.DataFrame): Patient data

    Returns:
        dict: 'numeric' (min/quartiles/mean/max per numeric column),
        'gender' and 'diagnosis' frequency tables, and 'daily_admissions'
        (admissions per date)
    """
    numeric = df[NUMERIC_COLUMNS].describe().loc[['min', '25%', '50%', 'mean', '75%', 'max']]

    daily = (
        df.groupby('admission_date').size()
        .rename('Count')
        .reset_index()
        .sort_values('admission_date')
    )

    summary = {
        'numeric': numeric,
        'gender': df['gender'].astype(str).value_counts().sort_index(),
        'diagnosis': df['diagnosis'].astype(str).value_counts().sort_index(),
        'daily_admissions': daily,
    }

    logger.info("Numeric summary:\n%s", numeric.round(2).to_string())
    logger.info("Gender counts: %s", summary['gender'].to_dict())
    logger.info("Diagnosis counts: %s", summary['diagnosis'].to_dict())
    return summary


def _save(fig, path):
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    logger.info(f"Plot saved to {path}")
    return path


def plot_age_distribution(df, path, binwidth=5):
    fig, ax = plt.subplots(figsize=(8, 5))
    bins = np.arange(df['age'].min(), df['age'].max() + binwidth + 1, binwidth)
    ax.hist(df['age'], bins=bins, color='pink', edgecolor='black')
    ax.set_title('Patient Age Distribution')
    ax.set_xlabel('Age')
    ax.set_ylabel('Frequency')
    return _save(fig, path)


def plot_diagnosis_counts(df, path):
    counts = df['diagnosis'].astype(str).value_counts().sort_index()
    fig, ax = plt.subplots(figsize=(8, 5))
    colors = plt.cm.tab10(np.arange(len(counts)))
    ax.bar(counts.index, counts.values, color=colors)
    ax.set_title('Diagnosis Frequency')
    ax.set_xlabel('diagnosis')
    ax.set_ylabel('Count')
    plt.setp(ax.get_xticklabels(), rotation=45, ha='right')
    return _save(fig, path)


def plot_daily_admissions(df, path):
    daily = df.groupby('admission_date').size()
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(daily.index, daily.values, color='blue')
    ax.set_title('Daily Admissions Over Time')
    ax.set_xlabel('Date')
    ax.set_ylabel('Number of Admissions')
    fig.autofmt_xdate()
    return _save(fig, path)


def plot_cost_vs_stay(df, path):
    """Scatter of treatment cost against stay, with a least-squares line per diagnosis."""
    fig, ax = plt.subplots(figsize=(9, 6))
    for diagnosis, group in df.groupby(df['diagnosis'].astype(str)):
        points = ax.scatter(group['length_of_stay'], group['treatment_cost'], alpha=0.6, label=diagnosis)
        if group['length_of_stay'].nunique() > 1:
            slope, intercept = np.polyfit(group['length_of_stay'], group['treatment_cost'], 1)
            xs = np.array([group['length_of_stay'].min(), group['length_of_stay'].max()])
            ax.plot(xs, slope * xs + intercept, color=points.get_facecolor()[0])
    ax.set_title('Treatment Cost vs. Length of Stay by Diagnosis')
    ax.set_xlabel('Length of Stay (days)')
    ax.set_ylabel('Treatment Cost ($)')
    ax.legend(title='diagnosis')
    return _save(fig, path)


def plot_features_by_risk_group(df, path):
    """Boxplots of age and length of stay for each risk group."""
    groups = [g for g in config.RISK_GROUPS if (df['risk_group'].astype(str) == g).any()]
    fig, axes = plt.subplots(1, 2, figsize=(11, 5))
    for ax, feature in zip(axes, config.NUMERIC_FEATURES):
        data = [df.loc[df['risk_group'].astype(str) == g, feature] for g in groups]
        ax.boxplot(data)
        ax.set_xticks(range(1, len(groups) + 1))
        ax.set_xticklabels(groups)
        ax.set_title(feature)
        ax.set_xlabel('Risk Group')
        ax.set_ylabel('Value')
    fig.suptitle('Boxplots of Patient Features by Risk Group')
    return _save(fig, path)


def plot_diagnosis_by_risk_group(df, path):
    table = pd.crosstab(df['risk_group'].astype(str), df['diagnosis'].astype(str))
    table = table.reindex([g for g in config.RISK_GROUPS if g in table.index])
    fig, ax = plt.subplots(figsize=(9, 6))
    table.plot.bar(ax=ax, rot=0)
    ax.set_title('Diagnosis Distribution by Risk Group')
    ax.set_xlabel('Risk Group')
    ax.set_ylabel('Count')
    ax.legend(title='Diagnosis')
    return _save(fig, path)


def plot_confusion_matrix(matrix, path):
    counts = matrix.counts
    fig, ax = plt.subplots(figsize=(6, 5))
    image = ax.imshow(counts.to_numpy(), cmap='Blues')
    for i in range(counts.shape[0]):
        for j in range(counts.shape[1]):
            ax.text(j, i, int(counts.iat[i, j]), ha='center', va='center')
    ax.set_xticks(range(counts.shape[1]))
    ax.set_xticklabels(counts.columns)
    ax.set_yticks(range(counts.shape[0]))
    ax.set_yticklabels(counts.index)
    ax.set_xlabel('Actual')
    ax.set_ylabel('Predicted')
    ax.set_title('Risk Group Confusion Matrix')
    fig.colorbar(image, ax=ax)
    return _save(fig, path)


def write_cohort_plots(df, plots_dir):
    """
    Write every exploratory plot for a risk-scored cohort.

    Args:
        df (pd.DataFrame): Patient data with `risk_group`
        plots_dir (str): Output directory, created if needed

    Returns:
        list[str]: Paths of the written PNG files
    """
    os.makedirs(plots_dir, exist_ok=True)
    plots = [
        (plot_age_distribution, 'age_distribution.png'),
        (plot_diagnosis_counts, 'diagnosis_counts.png'),
        (plot_daily_admissions, 'daily_admissions.png'),
        (plot_cost_vs_stay, 'cost_vs_length_of_stay.png'),
        (plot_features_by_risk_group, 'features_by_risk_group.png'),
        (plot_diagnosis_by_risk_group, 'diagnosis_by_risk_group.png'),
    ]
    return [plot(df, os.path.join(plots_dir, name)) for plot, name in plots]
