"""
FastAPI dependencies: database session, caller identity and services.

Identity comes from a bearer JWT minted by the campus identity provider;
``sub`` carries the user id and ``role`` the user's role.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from gatepass.config.settings import settings
from gatepass.core.exceptions import AuthenticationError, AuthorizationError
from gatepass.core.logging import user_id as user_id_var
from gatepass.db.session import get_db
from gatepass.models.base import UserRole
from gatepass.repositories import (
    GatePassRepository,
    LeaveApprovalRepository,
    LeaveRequestRepository,
    NotificationRepository,
    UserRepository,
)
from gatepass.services.gate_pass.gate_pass_service import GatePassService
from gatepass.services.leave.leave_workflow_service import LeaveWorkflowService
from gatepass.services.notification.notification_dispatcher import NotificationDispatcher
from gatepass.services.notification.sinks import LoggingNotificationSink, NotificationSink

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentIdentity:
    user_id: str
    role: UserRole


def decode_identity_token(token: str) -> CurrentIdentity:
    """
    Verify and decode an identity token.

    Raises:
        AuthenticationError: If the token is invalid, expired or lacks claims
    """
    try:
        claims = jwt.decode(
            token,
            settings.IDENTITY_JWT_SECRET,
            algorithms=[settings.IDENTITY_JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Identity token has expired") from e
    except jwt.PyJWTError as e:
        raise AuthenticationError("Invalid identity token") from e

    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Identity token has no subject")

    try:
        role = UserRole(claims.get("role"))
    except ValueError as e:
        raise AuthenticationError("Identity token carries an unknown role") from e

    return CurrentIdentity(user_id=str(subject), role=role)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> CurrentIdentity:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    identity = decode_identity_token(credentials.credentials)
    user_id_var.set(identity.user_id)
    return identity


def require_roles(*roles: UserRole) -> Callable[..., CurrentIdentity]:
    """Dependency factory restricting an endpoint to ``roles``."""
    allowed = frozenset(roles)

    async def dependency(identity: CurrentIdentity = Depends(get_current_identity)) -> CurrentIdentity:
        if identity.role not in allowed:
            raise AuthorizationError(
                "Role not permitted for this operation",
                required_role=",".join(sorted(r.value for r in allowed)),
                actual_role=identity.role.value,
            )
        return identity

    return dependency


# --- Services -----------------------------------------------------------------

_notification_sink: NotificationSink = LoggingNotificationSink()


def get_notification_sink() -> NotificationSink:
    return _notification_sink


def get_notification_dispatcher(
    db: Session = Depends(get_db),
    sink: NotificationSink = Depends(get_notification_sink),
) -> NotificationDispatcher:
    return NotificationDispatcher(NotificationRepository(db), UserRepository(db), db, sink=sink)


def get_gate_pass_service(db: Session = Depends(get_db)) -> GatePassService:
    return GatePassService(GatePassRepository(db), LeaveRequestRepository(db), db)


def get_workflow_service(
    db: Session = Depends(get_db),
    gate_pass_service: GatePassService = Depends(get_gate_pass_service),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> LeaveWorkflowService:
    return LeaveWorkflowService(
        LeaveRequestRepository(db),
        LeaveApprovalRepository(db),
        UserRepository(db),
        gate_pass_service,
        notifier,
        db,
    )


__all__ = [
    "CurrentIdentity",
    "decode_identity_token",
    "get_current_identity",
    "get_db",
    "get_gate_pass_service",
    "get_notification_dispatcher",
    "get_notification_sink",
    "get_workflow_service",
    "require_roles",
]
