from __future__ import annotations

from dataclasses import dataclass

from .enums import Role
from .exceptions import AuthorizationError


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as resolved by the boundary layer."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_role(actor: Actor, *roles: Role, message: str = "You do not have permission for this action") -> None:
    if actor.role not in roles:
        raise AuthorizationError(message)
