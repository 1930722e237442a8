from __future__ import annotations


class AppError(Exception):
    # Base class for domain errors (intended, meaningful failures).
    pass


class ImporterError(AppError):
    # Raised for ingestion failures (unreadable file, undecodable sheet, etc.).
    pass


class InsufficientDataError(ImporterError):
    # Raised when the table has fewer rows than the chosen question row requires.
    pass


class UnknownColumnError(AppError):
    # Raised when a column index does not exist in the survey.
    pass


class UnknownMatrixGroupError(AppError):
    # Raised when a matrix group id is not (or no longer) present.
    pass


class InvalidTypeChangeError(AppError):
    # Raised when a requested reclassification cannot be applied to the column.
    pass


class ScoreMapError(AppError):
    # Raised when a score-map override payload is malformed or names unknown options.
    pass
