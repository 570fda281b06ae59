"""
openplan.errors

Domain exception types shared by services and the API layer.

The API app factory maps these onto HTTP status codes; services never raise
`HTTPException` themselves.
"""

from __future__ import annotations


class OpenPlanError(Exception):
    pass


class ConfigurationError(OpenPlanError):
    """The application configuration file could not be parsed."""


class NotFoundError(OpenPlanError):
    pass


class ConflictError(OpenPlanError):
    pass


class ValidationFailed(OpenPlanError):
    pass
