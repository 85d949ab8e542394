"""Domain entity describing who is looking at notifications."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ViewerRole(str, Enum):
    """Roles known to the notification audience rules."""

    ADMIN = "admin"
    MEMBER = "member"
    VISITOR = "visitor"

    @classmethod
    def from_claim(cls, value: str | None) -> "ViewerRole":
        """Map a role claim from the session provider onto a viewer role."""

        normalized = (value or "").strip().lower()
        if normalized in {"admin", "super_admin"}:
            return cls.ADMIN
        if normalized == "member":
            return cls.MEMBER
        return cls.VISITOR


@dataclass(frozen=True)
class Viewer:
    """Authenticated user identity as seen by the notification pipeline."""

    user_id: str
    role: ViewerRole = ViewerRole.MEMBER
    name: str | None = None

    def is_admin(self) -> bool:
        return self.role == ViewerRole.ADMIN


__all__ = ["Viewer", "ViewerRole"]
