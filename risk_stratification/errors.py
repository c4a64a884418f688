"""Exceptions raised by the risk stratification pipeline."""


class RiskPipelineError(Exception):
    """Base class for every error that terminates a pipeline run."""


class InvalidRecordError(RiskPipelineError, ValueError):
    """Patient data is missing columns or breaks a record invariant."""


class SplitConfigurationError(RiskPipelineError, ValueError):
    """The train/test split cannot be used for training and evaluation."""


class ModelNotConvergedError(RiskPipelineError, RuntimeError):
    """The classifier fit stopped before the solver converged."""


class ModelNotFittedError(RiskPipelineError, RuntimeError):
    """Prediction was requested from a classifier that was never trained."""
