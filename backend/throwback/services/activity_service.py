"""Activity log recording and queries."""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi import Request
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from throwback.models.activity import LogAction
from throwback.services.logging_service import app_logger


def client_info(request: Optional[Request]) -> Dict[str, Optional[str]]:
    """Extract client IP and user agent from a request."""
    if request is None:
        return {"ip_address": None, "user_agent": None}
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent")
    }


def record_action(
    db: Session,
    action_type: str,
    description: str,
    user_id: Optional[UUID] = None,
    request: Optional[Request] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    extra_data: Optional[Dict[str, Any]] = None,
    created_by: Optional[UUID] = None
) -> LogAction:
    """
    Persist an activity log entry that is itself the record of the action.

    Database errors propagate to the caller.
    """
    entry = LogAction(
        action_type=action_type,
        description=description,
        user_id=user_id,
        created_by=created_by or user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        extra_data=extra_data,
        **client_info(request)
    )
    db.add(entry)
    db.commit()
    return entry


def log_action(
    db: Session,
    action_type: str,
    description: str,
    user_id: Optional[UUID] = None,
    request: Optional[Request] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    extra_data: Optional[Dict[str, Any]] = None,
    created_by: Optional[UUID] = None
) -> Optional[LogAction]:
    """
    Persist an activity log entry.

    Callers commit their own changes first; a failure here is logged and
    never propagated to the request.

    Args:
        db: Database session
        action_type: One of the ActionType constants
        description: Human readable description
        user_id: User the action concerns
        request: Incoming request (for IP and user agent)
        entity_type: Type of the target entity
        entity_id: Id of the target entity
        extra_data: Additional JSON payload
        created_by: Acting user when different from user_id

    Returns:
        The created entry, or None if it could not be saved
    """
    try:
        return record_action(
            db, action_type, description,
            user_id=user_id, request=request,
            entity_type=entity_type, entity_id=entity_id,
            extra_data=extra_data, created_by=created_by
        )
    except SQLAlchemyError as e:
        db.rollback()
        app_logger.error("Failed to record activity", action_type=action_type, error=str(e))
        return None


def has_logged_since(
    db: Session,
    action_type: str,
    user_id: UUID,
    entity_id: UUID,
    since: Optional[datetime] = None
) -> bool:
    """Whether a user already performed an action on an entity (optionally since a date)."""
    query = db.query(LogAction.id).filter(
        LogAction.action_type == action_type,
        LogAction.user_id == user_id,
        LogAction.entity_id == entity_id
    )
    if since is not None:
        query = query.filter(LogAction.created_at >= since)
    return query.first() is not None
