import itertools

import pandas as pd
import pytest

from risk_stratification import config
from risk_stratification.risk_scoring import (
    add_risk_columns,
    age_band,
    diagnosis_band,
    risk_group_for_score,
    score,
    stay_band,
)


@pytest.mark.parametrize('age, diagnosis, stay, expected', [
    (80, 'pneumonia', 20, (6, 'High')),
    (30, 'asthma', 3, (0, 'Low')),
    (65, 'bronchitis', 8, (3, 'Medium')),
    (75, 'COVID-19', 1, (4, 'Medium')),
    (74, 'COVID-19', 14, (5, 'High')),
    (59, 'bronchitis', 13, (2, 'Low')),
])
def test_score_examples(age, diagnosis, stay, expected):
    assert score(age, diagnosis, stay) == expected


@pytest.mark.parametrize('age, points', [(18, 0), (59, 0), (60, 1), (74, 1), (75, 2), (90, 2)])
def test_age_band_boundaries(age, points):
    assert age_band(age) == points


@pytest.mark.parametrize('stay, points', [(1, 0), (6, 0), (7, 1), (13, 1), (14, 2), (30, 2)])
def test_stay_band_boundaries(stay, points):
    assert stay_band(stay) == points


def test_diagnosis_bands():
    assert diagnosis_band('COVID-19') == 2
    assert diagnosis_band('pneumonia') == 2
    assert diagnosis_band('bronchitis') == 1
    assert diagnosis_band('asthma') == 0


def test_unknown_diagnosis_scores_zero():
    assert diagnosis_band('influenza') == 0
    assert score(80, 'influenza', 20) == (4, 'Medium')


def test_group_thresholds_are_monotonic():
    groups = [risk_group_for_score(s) for s in range(7)]
    assert groups == ['Low', 'Low', 'Low', 'Medium', 'Medium', 'High', 'High']
    ranks = [config.RISK_GROUPS.index(g) for g in groups]
    assert ranks == sorted(ranks)


def test_score_is_total_over_domain():
    for age, diagnosis, stay in itertools.product(range(18, 91), config.DIAGNOSES, range(1, 31)):
        risk_score, group = score(age, diagnosis, stay)
        assert 0 <= risk_score <= 6
        assert group == risk_group_for_score(risk_score)
        assert risk_score == age_band(age) + diagnosis_band(diagnosis) + stay_band(stay)


def test_add_risk_columns_matches_scalar_rule():
    grid = pd.DataFrame(
        list(itertools.product(range(18, 91, 3), config.DIAGNOSES + ('influenza',), range(1, 31, 2))),
        columns=['age', 'diagnosis', 'length_of_stay'],
    )
    scored = add_risk_columns(grid)
    expected = [score(*row) for row in grid.itertuples(index=False)]
    assert list(scored['risk_score']) == [s for s, _ in expected]
    assert list(scored['risk_group'].astype(str)) == [g for _, g in expected]


def test_add_risk_columns_returns_ordered_copy(patient_data):
    scored = add_risk_columns(patient_data)
    assert 'risk_score' not in patient_data.columns
    assert list(scored['risk_group'].cat.categories) == ['Low', 'Medium', 'High']
    assert scored['risk_group'].cat.ordered
    assert scored['risk_group'].notna().all()


def test_add_risk_columns_warns_on_unknown_diagnosis(caplog):
    frame = pd.DataFrame({'age': [80], 'diagnosis': ['influenza'], 'length_of_stay': [20]})
    with caplog.at_level('WARNING', logger='risk_stratification.risk_scoring'):
        scored = add_risk_columns(frame)
    assert scored['risk_score'].iloc[0] == 4
    assert 'unrecognised diagnosis' in caplog.text
