# exceptions.py
# Error taxonomy for the genre comparison pipeline. Every error is fatal to a run.

from typing import Optional, Tuple


class GenreAnalysisError(Exception):
    """Base error; optionally tagged with the failing stage and its input shape."""

    def __init__(self, message: str, stage: Optional[str] = None,
                 shape: Optional[Tuple[int, ...]] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.shape = shape

    def __str__(self):
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.shape is not None:
            context.append(f"shape={tuple(self.shape)}")
        if context:
            return f"{self.message} [{', '.join(context)}]"
        return self.message


class ConfigurationError(GenreAnalysisError):
    """Invalid settings, missing columns or unreadable input rows."""


class TrainingError(GenreAnalysisError):
    """Degenerate training data."""


class InferenceError(GenreAnalysisError):
    """Prediction inputs do not match the fitted model."""


class DataQualityError(GenreAnalysisError):
    """A required column is empty or not numeric."""
