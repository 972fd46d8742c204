"""FastAPI dependencies: DB session, current user from JWT, role checks,
and the optional chat completion client.
"""
from typing import Callable, Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ai.groq_client import ChatCompletionClient
from app.core.audit import AuditLog
from app.core.exceptions import BusinessError
from app.core.permissions import Permission, UserRole, role_has_permission
from app.core.security import TokenExpired, TokenInvalid, decode_access_token
from app.db.session import SessionLocal
from app.models.user import User

security = HTTPBearer(auto_error=False)

AUTH_REQUIRED = "Authentication required. Please provide a valid token."
TOKEN_EXPIRED = "Token has expired. Please login again."
TOKEN_INVALID = "Invalid token. Please login again."
ACCOUNT_DEACTIVATED = "Your account has been deactivated. Please contact an administrator."


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Verify the bearer token and load an active user."""
    if not credentials or not credentials.credentials:
        raise BusinessError.unauthorized(AUTH_REQUIRED, reason=f"No bearer token on {request.url.path}")

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenExpired:
        AuditLog.log_authentication("token_rejected", None, _client_ip(request), False, reason="expired")
        raise BusinessError.unauthorized(TOKEN_EXPIRED, reason="Expired token")
    except TokenInvalid as e:
        AuditLog.log_authentication("token_rejected", None, _client_ip(request), False, reason=str(e))
        raise BusinessError.unauthorized(TOKEN_INVALID, reason="Invalid token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise BusinessError.unauthorized(TOKEN_INVALID, reason="Non-numeric subject")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise BusinessError.unauthorized(TOKEN_INVALID, reason=f"Token for unknown user {user_id}")
    if not user.is_active:
        raise BusinessError.forbidden(ACCOUNT_DEACTIVATED, reason=f"Inactive user {user.id}")
    return user


def require_permission(permission: Permission) -> Callable[..., User]:
    """
    Route dependency that admits only roles holding `permission`.

    Usage:
        current_user: User = Depends(require_permission(Permission.DISPENSE_PRESCRIPTION))
    """

    def checker(request: Request, current_user: User = Depends(get_current_user)) -> User:
        try:
            role = UserRole(current_user.role)
        except ValueError:
            role = None
        if role is None or not role_has_permission(role, permission):
            AuditLog.log_access_denied(request.url.path, current_user.id, current_user.role, permission.value)
            raise BusinessError.forbidden(reason=f"{current_user.role} lacks {permission.value}")
        return current_user

    return checker


def get_completion_client(request: Request) -> Optional[ChatCompletionClient]:
    """The client built at startup, or None when completions are not configured."""
    return getattr(request.app.state, "completion_client", None)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """The active user behind a valid bearer token, or None for anonymous callers."""
    if not credentials or not credentials.credentials:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
        user_id = int(payload["sub"])
    except (TokenExpired, TokenInvalid, TypeError, ValueError):
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        return None
    return user
