from __future__ import annotations


class HRError(RuntimeError):
    """Base for failures the HTTP layer maps to a status code."""

    status_code = 500


class NotFound(HRError):
    status_code = 404


class ValidationError(HRError):
    status_code = 400


class ConflictError(HRError):
    status_code = 409


class StoreError(HRError):
    status_code = 500
