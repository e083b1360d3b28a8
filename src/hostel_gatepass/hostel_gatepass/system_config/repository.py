from __future__ import annotations

from typing import Optional, Protocol

from .model import SystemConfig


class SystemConfigRepository(Protocol):
    def get(self) -> Optional[SystemConfig]:
        raise NotImplementedError

    def save(self, config: SystemConfig) -> None:
        """Insert or replace the singleton row."""

        raise NotImplementedError
