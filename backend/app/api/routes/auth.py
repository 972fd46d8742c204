"""Auth: register, login, profile.

Passwords are bcrypt-hashed; tokens are 7-day HS256 JWTs returned in the
response body and sent back as a bearer header.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user, get_optional_user, ACCOUNT_DEACTIVATED
from app.api.envelope import ok
from app.core.audit import AuditLog
from app.core.config import settings
from app.core.exceptions import BusinessError
from app.core.permissions import UserRole
from app.core.security import verify_password, get_password_hash, create_access_token
from app.models.user import User
from app.schemas.user import UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _session_payload(user: User) -> dict:
    token = create_access_token(subject=str(user.id), email=user.email, role=user.role)
    return {
        "user": UserResponse.model_validate(user),
        "token": token,
        "token_type": "bearer",
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    data: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    requester: Optional[User] = Depends(get_optional_user),
):
    """Register a new user. Only an admin caller may assign a role other than staff."""
    if len(data.password) < settings.MIN_PASSWORD_LENGTH:
        raise BusinessError.bad_request(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
        )

    if db.query(User).filter(User.email == data.email).first():
        AuditLog.log_authentication("register", data.email, _client_ip(request), False,
                                    reason="Email already registered")
        raise BusinessError.bad_request("User with this email already exists")

    role = data.role
    if role != UserRole.STAFF and (requester is None or requester.role != UserRole.ADMIN.value):
        logger.warning(f"Ignoring requested role {role.value} for {data.email}: caller is not an admin")
        role = UserRole.STAFF

    user = User(
        name=data.name,
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    AuditLog.log_authentication("register", user.email, _client_ip(request), True)
    return ok(_session_payload(user), "User registered successfully")


@router.post("/login")
def login(data: UserLogin, request: Request, db: Session = Depends(get_db)):
    """Generic error on bad credentials: don't say which field is wrong."""
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password(data.password, user.hashed_password):
        AuditLog.log_authentication("failed_login", data.email, _client_ip(request), False,
                                    reason="Invalid credentials")
        raise BusinessError.unauthorized("Invalid email or password", reason="Bad credentials")

    if not user.is_active:
        AuditLog.log_authentication("failed_login", data.email, _client_ip(request), False,
                                    reason="Account deactivated")
        raise BusinessError.forbidden(ACCOUNT_DEACTIVATED, reason=f"Inactive user {user.id}")

    AuditLog.log_authentication("login", user.email, _client_ip(request), True)
    return ok(_session_payload(user), "Login successful")


@router.get("/profile")
def profile(current_user: User = Depends(get_current_user)):
    return ok({"user": UserResponse.model_validate(current_user)})
