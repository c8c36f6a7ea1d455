"""Exceptions raised by the pipeline. All of them abort the current run."""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class DataFormatError(PipelineError):
    """Input data is malformed or lacks an expected column."""


class TransformStateMismatchError(PipelineError):
    """Data is incompatible with a fitted feature transform."""


class InsufficientDataError(PipelineError):
    """Too few rows per class to build the requested folds."""


class UnknownCategoryError(PipelineError):
    """A categorical level was not seen when the transform was fitted."""
