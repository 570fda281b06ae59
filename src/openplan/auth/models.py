"""
openplan.auth.models

Authenticated identity type injected into endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    # `subject` is the numeric id of a row in `users`, as a string.
    subject: str

    @property
    def user_id(self) -> int:
        return int(self.subject)
