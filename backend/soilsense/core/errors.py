"""Domain errors raised by the soil analysis core.

The HTTP layer maps each class to a status code through ``status_code``;
the core itself never imports FastAPI.
"""

from __future__ import annotations


class SoilSenseError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ServiceUnavailable(SoilSenseError):
    """The inference service answered with a non-success status."""

    status_code = 503

    def __init__(self, message: str = "", *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class NetworkError(SoilSenseError):
    """The inference service could not be reached."""

    status_code = 502


class NonSoilImage(SoilSenseError):
    status_code = 422


class DecodeError(SoilSenseError):
    status_code = 400


class StorageError(SoilSenseError):
    status_code = 500


class InvalidFormat(SoilSenseError):
    status_code = 400


class InvalidUpload(SoilSenseError):
    status_code = 400

    def __init__(self, message: str = "", *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class AnalysisInProgress(SoilSenseError):
    status_code = 409


class AnalysisTimeout(SoilSenseError):
    status_code = 504
