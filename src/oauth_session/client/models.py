"""Typed records exchanged with the backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


class User(dict):
    """Authenticated user as returned by the backend.

    An open mapping: the backend may add any field.  ``id``, ``email``,
    ``firstName`` and ``lastName`` are always expected to be present.
    """

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "User":
        return cls(payload or {})

    @property
    def id(self) -> str | None:
        value = self.get("id")
        return None if value is None else str(value)

    @property
    def email(self) -> str | None:
        return self.get("email")

    @property
    def first_name(self) -> str | None:
        return self.get("firstName")

    @property
    def last_name(self) -> str | None:
        return self.get("lastName")


@dataclass(frozen=True, slots=True)
class LoginResult:
    """Payload of ``POST /oauth2/token``."""

    token: str
    user: User

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "LoginResult":
        return cls(
            token=str(payload.get("token") or ""),
            user=User.from_payload(payload.get("user")),
        )
