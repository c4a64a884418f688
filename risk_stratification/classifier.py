"""
Multinomial logistic regression over risk groups.

Predicts Low / Medium / High from age, length of stay and diagnosis.
Numeric features are standardised and diagnosis is one-hot encoded against
the `asthma` reference level; the fit itself is scikit-learn's
LogisticRegression with no penalty (maximum likelihood
multinomial fit, lbfgs solver).
"""

import json
import logging
import os
import warnings
from datetime import datetime

import joblib
import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from . import config
from .errors import ModelNotConvergedError, ModelNotFittedError, SplitConfigurationError
from .risk_scoring import score

logger = logging.getLogger(__name__)

# First level is the reference category
DIAGNOSIS_LEVELS = ['asthma', 'bronchitis', 'COVID-19', 'pneumonia']


class RiskGroupClassifier:
    """
    Risk group model: preprocessing plus a multinomial logit.

    Classes are encoded as their position in `config.RISK_GROUPS`, so
    probability columns and tie-breaking both follow Low < Medium < High.
    """

    def __init__(self, random_state=42, max_iter=config.MAX_ITER):
        """
        Args:
            random_state (int): Seed handed to the solver
            max_iter (int): Iteration cap; reaching it is a fatal error
        """
        self.random_state = random_state
        self.max_iter = max_iter
        self.feature_names = config.NUMERIC_FEATURES + config.CATEGORICAL_FEATURES
        self.classes = list(config.RISK_GROUPS)
        self.pipeline = None
        self.performance_metrics = {}

    def _build_pipeline(self):
        preprocessor = ColumnTransformer(
            [
                ('numeric', StandardScaler(), config.NUMERIC_FEATURES),
                ('categorical', OneHotEncoder(
                    categories=[DIAGNOSIS_LEVELS],
                    drop='first',
                    handle_unknown='ignore',
                    sparse_output=False,
                ), config.CATEGORICAL_FEATURES),
            ],
            verbose_feature_names_out=False,
        )
        model = LogisticRegression(
            penalty=None,
            solver='lbfgs',
            max_iter=self.max_iter,
            random_state=self.random_state,
        )
        return Pipeline([('preprocess', preprocessor), ('model', model)])

    def _features(self, df):
        X = df[self.feature_names].copy()
        X[config.NUMERIC_FEATURES] = X[config.NUMERIC_FEATURES].astype(float)
        X['diagnosis'] = X['diagnosis'].astype(str)
        return X

    def _check_fitted(self):
        if self.pipeline is None:
            raise ModelNotFittedError("Classifier has not been trained; call fit() first")

    @property
    def is_fitted(self):
        return self.pipeline is not None

    def fit(self, train, label_col='risk_group'):
        """
        Fit the model on the training partition.

        Args:
            train (pd.DataFrame): Rows with the feature columns and `label_col`
            label_col (str): Risk group column

        Returns:
            RiskGroupClassifier: self

        Raises:
            SplitConfigurationError: A risk group is missing from `train`
            ModelNotConvergedError: The solver hit `max_iter` before converging
        """
        labels = train[label_col].astype(str)
        missing = [group for group in self.classes if not (labels == group).any()]
        if missing:
            raise SplitConfigurationError(f"Training data has no rows for risk group(s) {missing}")

        y = labels.map({group: code for code, group in enumerate(self.classes)}).to_numpy()
        if np.isnan(y.astype(float)).any():
            unknown = sorted(set(labels) - set(self.classes))
            raise SplitConfigurationError(f"Unknown risk group label(s) in training data: {unknown}")

        X = self._features(train)
        pipeline = self._build_pipeline()

        logger.info(f"Fitting multinomial logistic regression on {len(X)} samples...")
        with warnings.catch_warnings():
            warnings.simplefilter('error', ConvergenceWarning)
            try:
                pipeline.fit(X, y.astype(int))
            except ConvergenceWarning as exc:
                raise ModelNotConvergedError(
                    f"Multinomial logit did not converge within {self.max_iter} iterations"
                ) from exc

        self.pipeline = pipeline
        n_iter = int(np.max(pipeline.named_steps['model'].n_iter_))
        logger.info(f"Converged after {n_iter} iterations")
        return self

    def predict_proba(self, df):
        """
        Class probabilities for each row.

        Returns:
            pd.DataFrame: Columns Low, Medium, High indexed like `df`
        """
        self._check_fitted()
        proba = self.pipeline.predict_proba(self._features(df))
        return pd.DataFrame(proba, index=df.index, columns=self.classes)

    def predict(self, df):
        """
        Most probable risk group for each row.

        Exact ties go to the lowest group (Low before Medium before High).

        Returns:
            pd.Series: Ordered categorical risk groups indexed like `df`
        """
        proba = self.predict_proba(df)
        codes = np.argmax(proba.to_numpy(), axis=1)
        groups = pd.Categorical.from_codes(codes, categories=self.classes, ordered=True)
        return pd.Series(groups, index=df.index, name='predicted_risk_group')

    def coefficient_table(self):
        """
        Coefficients in reference-level form, on the original feature scale.

        One row per non-reference class (Medium, High) holding the log-odds
        of that class against Low.

        Returns:
            pd.DataFrame: Index = class, columns = (Intercept) + features
        """
        self._check_fitted()
        preprocess = self.pipeline.named_steps['preprocess']
        model = self.pipeline.named_steps['model']
        scaler = preprocess.named_transformers_['numeric']

        names = list(preprocess.get_feature_names_out())
        coef = model.coef_.copy()
        intercept = model.intercept_.copy()

        n_numeric = len(config.NUMERIC_FEATURES)
        numeric = coef[:, :n_numeric] / scaler.scale_
        intercept = intercept - numeric @ scaler.mean_
        coef[:, :n_numeric] = numeric

        # Relative to the reference class (Low)
        coef = coef[1:] - coef[0]
        intercept = intercept[1:] - intercept[0]

        table = pd.DataFrame(coef, index=self.classes[1:], columns=names)
        table.insert(0, '(Intercept)', intercept)
        table.index.name = 'class'
        return table

    def predict_risk(self, patient):
        """
        Predict the risk group for a single patient.

        Args:
            patient (dict): age, length_of_stay and diagnosis

        Returns:
            dict: Predicted group, class probabilities, and the rule-based
            score and group for comparison
        """
        frame = pd.DataFrame([patient])
        proba = self.predict_proba(frame).iloc[0]
        predicted = self.predict(frame).iloc[0]
        rule_score, rule_group = score(
            patient['age'], patient['diagnosis'], patient['length_of_stay']
        )
        return {
            'predicted_risk_group': predicted,
            'probabilities': {group: float(p) for group, p in proba.items()},
            'risk_score': rule_score,
            'risk_group': rule_group,
        }

    def save(self, filepath):
        """
        Save the fitted model package and its JSON metadata.

        Args:
            filepath (str): Target `.pkl` path; metadata goes alongside it
        """
        self._check_fitted()
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        timestamp = datetime.now().isoformat()
        model_package = {
            'model': self.pipeline,
            'feature_names': self.feature_names,
            'classes': self.classes,
            'performance_metrics': self.performance_metrics,
            'timestamp': timestamp,
        }
        joblib.dump(model_package, filepath)
        logger.info(f"Model saved to {filepath}")

        metadata_path = os.path.splitext(filepath)[0] + '_metadata.json'
        with open(metadata_path, 'w') as f:
            json.dump({
                'feature_names': self.feature_names,
                'classes': self.classes,
                'performance_metrics': self.performance_metrics,
                'timestamp': timestamp,
            }, f, indent=2)
        logger.info(f"Metadata saved to {metadata_path}")
        return metadata_path

    @classmethod
    def load(cls, filepath):
        """Restore a classifier written by `save`."""
        model_package = joblib.load(filepath)
        model = model_package['model'].named_steps['model']
        classifier = cls(random_state=model.random_state, max_iter=model.max_iter)
        classifier.pipeline = model_package['model']
        classifier.feature_names = list(model_package['feature_names'])
        classifier.classes = list(model_package['classes'])
        classifier.performance_metrics = model_package.get('performance_metrics', {})
        logger.info(f"Model loaded from {filepath} (trained {model_package.get('timestamp', 'Unknown')})")
        return classifier
