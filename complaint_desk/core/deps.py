"""FastAPI dependencies for authentication, authorization, and collaborators."""

from typing import Callable, Generator

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from complaint_desk.core.config import settings
from complaint_desk.core.errors import ForbiddenError, NotAuthenticatedError
from complaint_desk.core.security import decode_session_token
from complaint_desk.db.session import SessionLocal
from complaint_desk.schemas.auth import (
    Actor,
    AdminActor,
    ClientActor,
    TechnicianActor,
    actor_from_claims,
)
from complaint_desk.services import messaging_channel, photo_storage
from complaint_desk.services.auto_assignment import AutoAssignmentPolicy

BEARER_PREFIX = "bearer "


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(request: Request) -> Actor:
    """
    Resolve the acting party from the ``Authorization: Bearer`` header.

    Raises:
        NotAuthenticatedError: header missing, token invalid or expired
    """
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        raise NotAuthenticatedError("Not authenticated")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise NotAuthenticatedError("Not authenticated")
    try:
        claims = decode_session_token(token)
    except jwt.InvalidTokenError:
        raise NotAuthenticatedError("Invalid or expired session token")
    return actor_from_claims(claims)


def require_actor(actor_type: type) -> Callable[..., Actor]:
    """
    Dependency factory for role-based authorization.

    Usage:
        actor: AdminActor = Depends(require_actor(AdminActor))
    """

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not isinstance(actor, actor_type):
            raise ForbiddenError(f"Role '{actor.role.value}' not authorized for this action")
        return actor

    return dependency


require_client = require_actor(ClientActor)
require_technician = require_actor(TechnicianActor)
require_admin = require_actor(AdminActor)


def get_photo_storage() -> photo_storage.PhotoStorage:
    return photo_storage.get_photo_storage()


def get_messaging_channel() -> messaging_channel.MessagingChannel:
    return messaging_channel.get_messaging_channel()


def get_auto_assignment_policy() -> AutoAssignmentPolicy:
    return AutoAssignmentPolicy(settings.DEFAULT_TECHNICIAN_PHONE)
