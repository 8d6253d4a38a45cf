"""Authenticated actor, resolved once per request from the session token."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union
from uuid import UUID

from complaint_desk.core.errors import NotAuthenticatedError
from complaint_desk.db.enums import Role


@dataclass(frozen=True)
class ClientActor:
    id: UUID
    role: ClassVar[Role] = Role.CLIENT


@dataclass(frozen=True)
class TechnicianActor:
    id: UUID
    role: ClassVar[Role] = Role.TECHNICIAN


@dataclass(frozen=True)
class AdminActor:
    id: UUID
    role: ClassVar[Role] = Role.ADMIN


Actor = Union[ClientActor, TechnicianActor, AdminActor]

_ACTOR_TYPES: dict[Role, type] = {
    Role.CLIENT: ClientActor,
    Role.TECHNICIAN: TechnicianActor,
    Role.ADMIN: AdminActor,
}


def actor_from_claims(claims: dict) -> Actor:
    """Build the typed actor from decoded token claims."""
    role = claims.get("role")
    subject = claims.get("sub")
    if not isinstance(role, str) or not Role.has_value(role) or not subject:
        raise NotAuthenticatedError("Invalid session token")
    try:
        actor_id = UUID(str(subject))
    except ValueError:
        raise NotAuthenticatedError("Invalid session token")
    return _ACTOR_TYPES[Role(role)](id=actor_id)
