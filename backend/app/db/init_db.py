"""Create all tables. Run on app startup.

Creates a bootstrap admin with a random password when no users exist.
The password is printed once; change it after first login.
"""
import secrets

from app.core.config import settings
from app.core.permissions import UserRole
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.models import user, medicine, transaction, prescription, reorder_request  # noqa: F401 - register models
from app.models.user import User


def init_db():
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if db.query(User).count() == 0:
            default_password = secrets.token_urlsafe(16)

            admin = User(
                name="Administrator",
                email=settings.DEFAULT_ADMIN_EMAIL,
                hashed_password=get_password_hash(default_password),
                role=UserRole.ADMIN.value,
            )
            db.add(admin)
            db.commit()

            print("\n" + "=" * 70)
            print("DEFAULT ADMIN USER CREATED")
            print("=" * 70)
            print(f"Email:    {settings.DEFAULT_ADMIN_EMAIL}")
            print(f"Password: {default_password}")
            print("\nChange this password immediately after first login!")
            print("=" * 70 + "\n")
    finally:
        db.close()
