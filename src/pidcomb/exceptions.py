"""Exception hierarchy for PID evaluation and candidate building.

Selection outcomes are never exceptions: a failed cut is recorded in the
cut funnel and the candidate is dropped. Only structural problems (missing
calibration, bad configuration, input schema not matching the active mode)
are raised, and they abort the batch.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


class PidCombError(Exception):
    """Base class for all package-specific errors."""


class CalibrationUnavailable(PidCombError):
    """A detector-response parametrization could not be resolved.

    Raised during initialization only. No partially loaded response is
    ever returned to the caller.
    """

    def __init__(self, name: str, source: str, timestamp: int | None = None):
        self.name = name
        self.source = source
        self.timestamp = timestamp
        message = f"Parametrization '{name}' not available from {source}"
        if timestamp is not None:
            message += f" for timestamp {timestamp}"
        super().__init__(message)


class InvalidConfiguration(PidCombError):
    """Configuration values that cannot be honoured (unknown species, bad toggle, ...)."""


class SchemaMismatch(PidCombError):
    """Input rows lack a column the active selection mode requires."""

    def __init__(self, column: str, entity: str):
        self.column = column
        self.entity = entity
        super().__init__(f"Required column '{column}' missing on {entity}")


class NotFound(PidCombError):
    """Calibration store has no object valid at the requested timestamp."""

    def __init__(self, path: str, timestamp: int):
        self.path = path
        self.timestamp = timestamp
        super().__init__(f"No object at '{path}' valid for timestamp {timestamp}")
