"""
Stratified train/test partitioning.

Each risk group is sampled independently: round(n_group * ratio) of its
rows go to the training set and the rest to the test set, so both
partitions keep the group proportions of the full table up to rounding.
"""

import logging

import numpy as np

from . import config
from .errors import SplitConfigurationError

logger = logging.getLogger(__name__)


def _round_half_up(value):
    return int(np.floor(value + 0.5))


def stratified_split(df, ratio, rng, label_col='risk_group'):
    """
    Split rows into train and test sets, stratified by `label_col`.

    Args:
        df (pd.DataFrame): Labelled patient data
        ratio (float): Share of each group assigned to training, in (0, 1)
        rng (np.random.Generator): Random source for the row selection
        label_col (str): Stratification column

    Returns:
        tuple: (train, test) DataFrames; disjoint, covering every row of `df`,
        each in the original row order
    """
    if not 0 < ratio < 1:
        raise SplitConfigurationError(f"Split ratio must be between 0 and 1, got {ratio}")

    labels = df[label_col].astype(str).to_numpy()
    in_train = np.zeros(len(df), dtype=bool)

    # Groups are visited in a fixed order so the draws do not depend on row order
    for group in sorted(set(labels), key=_group_order):
        positions = np.flatnonzero(labels == group)
        n_train = _round_half_up(len(positions) * ratio)
        chosen = rng.choice(positions, size=n_train, replace=False)
        in_train[chosen] = True

    train, test = df[in_train], df[~in_train]
    check_partitions(train, test, label_col)

    logger.info(f"Training set: {len(train)} samples ({len(train) / len(df):.1%})")
    logger.info(f"Test set:     {len(test)} samples ({len(test) / len(df):.1%})")
    return train, test


def check_partitions(train, test, label_col='risk_group'):
    """
    Ensure every risk group is represented in both partitions.

    Raises:
        SplitConfigurationError: A risk group has no rows in train or test
    """
    for name, part in (('training', train), ('test', test)):
        counts = part[label_col].astype(str).value_counts()
        empty = [group for group in config.RISK_GROUPS if counts.get(group, 0) == 0]
        if empty:
            raise SplitConfigurationError(
                f"The {name} partition has no rows for risk group(s) {empty}; "
                "adjust the split ratio or the cohort size"
            )


def _group_order(group):
    if group in config.RISK_GROUPS:
        return (config.RISK_GROUPS.index(group), group)
    return (len(config.RISK_GROUPS), group)
