"""
openplan.auth

Authentication/authorization package.

Responsibilities:
- JWT helpers and validation.
- FastAPI auth dependencies (Principal, current user, admin gate).
"""

# Package marker.
