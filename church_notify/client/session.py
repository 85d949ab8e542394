"""Authenticated session used by the realtime consumer."""

from __future__ import annotations

from dataclasses import dataclass

from church_notify.domain.entities import Viewer


@dataclass
class ClientSession:
    """Signed-in viewer and the bearer token used for API and stream calls."""

    viewer: Viewer | None = None
    token: str | None = None

    def is_authenticated(self) -> bool:
        return self.viewer is not None and bool(self.token)

    def sign_in(self, viewer: Viewer, token: str) -> None:
        self.viewer = viewer
        self.token = token

    def sign_out(self) -> None:
        self.viewer = None
        self.token = None


__all__ = ["ClientSession"]
