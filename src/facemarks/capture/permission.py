from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class PermissionStatus(str, Enum):
    authorized = "authorized"
    not_determined = "not_determined"
    denied = "denied"
    restricted = "restricted"


class CameraPermission(ABC):
    """Source of the user's camera-access decision."""

    @abstractmethod
    def status(self) -> PermissionStatus:
        """Return the current decision without prompting."""

    @abstractmethod
    def request(self) -> bool:
        """Prompt for access and return whether it was granted."""


class StaticPermission(CameraPermission):
    """Fixed answer; ``not_determined`` resolves to ``grant_on_request``."""

    def __init__(
        self,
        status: PermissionStatus = PermissionStatus.authorized,
        *,
        grant_on_request: bool = True,
    ) -> None:
        self._status = status
        self._grant_on_request = grant_on_request
        self.request_count = 0

    def status(self) -> PermissionStatus:
        return self._status

    def request(self) -> bool:
        self.request_count += 1
        self._status = (
            PermissionStatus.authorized if self._grant_on_request else PermissionStatus.denied
        )
        return self._grant_on_request
