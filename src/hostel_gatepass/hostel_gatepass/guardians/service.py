from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.pagination import PageParams, page_meta
from ..core.actor import Actor, require_role
from ..core.enums import LinkStatus, Relationship, Role
from ..core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import GuardianLink
from .repository import GuardianLinkRepository

logger = logging.getLogger(__name__)


class GuardianLinkRegistry:
    """Guardian <-> resident relationships. Links are soft-deleted, never removed."""

    def __init__(self, links: GuardianLinkRepository, users: UserRepository):
        self._links = links
        self._users = users

    def link(self, *, actor: Actor, guardian_id: int, resident_id: int, relationship: Relationship) -> GuardianLink:
        require_role(actor, Role.ADMIN, Role.SUPERVISOR, message="Only staff can link guardians")

        guardian = self._users.get_by_id(int(guardian_id))
        if not guardian:
            raise NotFoundError("Guardian user not found")
        if guardian.role != Role.GUARDIAN:
            raise ValidationError("User is not registered as a guardian")

        resident = self._users.get_by_id(int(resident_id))
        if not resident:
            raise NotFoundError("Resident user not found")
        if resident.role != Role.RESIDENT:
            raise ValidationError("User is not a resident")

        existing = self._links.find_pair(guardian_id=guardian.user_id, resident_id=resident.user_id)
        if existing and existing.is_active:
            raise DuplicateKeyError("This guardian-resident relationship already exists", key="uq_guardian_resident")

        if existing:
            if not self._links.reactivate(link_id=existing.link_id, relationship=relationship, linked_by=actor.user_id):
                raise DuplicateKeyError("This guardian-resident relationship already exists", key="uq_guardian_resident")
            link_id = existing.link_id
        else:
            link_id = self._links.create(
                guardian_id=guardian.user_id,
                resident_id=resident.user_id,
                relationship=relationship,
                linked_by=actor.user_id,
            )

        logger.info("Guardian %s linked to resident %s by %s", guardian.user_id, resident.user_id, actor.user_id)
        return self._require(link_id)

    def unlink(self, *, actor: Actor, link_id: int) -> None:
        require_role(actor, Role.ADMIN, Role.SUPERVISOR, message="Only staff can unlink guardians")
        link = self._require(link_id)
        if not link.is_active:
            raise ValidationError("Guardian link is already inactive")
        if not self._links.deactivate(link_id=link.link_id):
            raise ValidationError("Guardian link is already inactive")
        logger.info("Guardian link %s deactivated by %s", link.link_id, actor.user_id)

    def has_active_link(self, guardian_id: int, resident_id: int) -> bool:
        return self._links.has_active_link(guardian_id=int(guardian_id), resident_id=int(resident_id))

    def active_guardian_ids(self, resident_id: int) -> Sequence[int]:
        return self._links.active_guardian_ids(resident_id=int(resident_id))

    def has_any_active_guardian(self, resident_id: int) -> bool:
        return bool(self.active_guardian_ids(resident_id))

    def linked_resident_ids(self, guardian_id: int) -> Sequence[int]:
        return [l.resident_id for l in self._links.active_links_for_guardian(guardian_id=int(guardian_id))]

    def list_children(self, *, actor: Actor) -> list[dict]:
        require_role(actor, Role.GUARDIAN)
        links = self._links.active_links_for_guardian(guardian_id=actor.user_id)
        users = self._users.get_many(l.resident_id for l in links)
        out: list[dict] = []
        for l in links:
            user = users.get(l.resident_id)
            if not user:
                continue
            row = user.summary()
            row["relationship"] = l.relationship.value
            row["linkedAt"] = l.created_at.isoformat() if l.created_at else None
            out.append(row)
        return out

    def list_links(self, *, actor: Actor, params: PageParams, status: Optional[LinkStatus] = None) -> dict:
        require_role(actor, Role.ADMIN, Role.SUPERVISOR)
        links = self._links.list_links(status=status, limit=params.limit, offset=params.offset)
        total = self._links.count_links(status=status)
        return {"links": [self.to_dict(l) for l in links], "pagination": page_meta(total, params).as_dict()}

    def _require(self, link_id: int) -> GuardianLink:
        link = self._links.get(int(link_id))
        if not link:
            raise NotFoundError("Guardian link not found")
        return link

    @staticmethod
    def to_dict(link: GuardianLink) -> dict:
        return {
            "id": link.link_id,
            "guardianId": link.guardian_id,
            "residentId": link.resident_id,
            "relationship": link.relationship.value,
            "linkedBy": link.linked_by,
            "status": link.status.value,
            "createdAt": link.created_at.isoformat() if link.created_at else None,
        }
