from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import LinkStatus, Relationship
from .model import GuardianLink


class GuardianLinkRepository(Protocol):
    def get(self, link_id: int) -> Optional[GuardianLink]:
        raise NotImplementedError

    def find_pair(self, *, guardian_id: int, resident_id: int) -> Optional[GuardianLink]:
        raise NotImplementedError

    def create(self, *, guardian_id: int, resident_id: int, relationship: Relationship, linked_by: int) -> int:
        """Raises DuplicateKeyError when the (guardian, resident) pair already has a row."""

        raise NotImplementedError

    def reactivate(self, *, link_id: int, relationship: Relationship, linked_by: int) -> bool:
        """inactive -> active; False if the link was not inactive."""

        raise NotImplementedError

    def deactivate(self, *, link_id: int) -> bool:
        """active -> inactive; False if the link was not active."""

        raise NotImplementedError

    def has_active_link(self, *, guardian_id: int, resident_id: int) -> bool:
        raise NotImplementedError

    def active_guardian_ids(self, *, resident_id: int) -> Sequence[int]:
        raise NotImplementedError

    def active_links_for_guardian(self, *, guardian_id: int) -> Sequence[GuardianLink]:
        raise NotImplementedError

    def list_links(self, *, status: Optional[LinkStatus] = None, limit: int = 20, offset: int = 0) -> Sequence[GuardianLink]:
        raise NotImplementedError

    def count_links(self, *, status: Optional[LinkStatus] = None) -> int:
        raise NotImplementedError
