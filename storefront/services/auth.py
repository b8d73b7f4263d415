from datetime import timedelta
from typing import Optional
from sqlmodel import Session, select
from fastapi import HTTPException

from storefront.core import security
from storefront.core.logging import get_logger
from storefront.models.user import User, UserRole

logger = get_logger(__name__)

class AuthService:
    def __init__(self, session: Session):
        self.session = session

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        return security.create_access_token(data, expires_delta)

    def get_user_by_email(self, email: str) -> Optional[User]:
        # Use ilike for case-insensitive lookup
        return self.session.exec(select(User).where(User.email == email)).first() or \
               self.session.exec(select(User).where(User.email.ilike(email))).first()

    def register_user(
        self,
        email: str,
        password: str,
        first_name: str = None,
        last_name: str = None,
        role: UserRole = UserRole.CUSTOMER,
    ) -> User:
        if self.get_user_by_email(email):
            raise HTTPException(status_code=400, detail="Email already registered")

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=security.get_password_hash(password),
            role=role,
            is_active=True,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("user_registered", user_id=user.id, role=user.role.value)
        return user

    def authenticate_user(self, email: str, password: str) -> tuple[Optional[User], Optional[str]]:
        user = self.get_user_by_email(email)
        if not user:
            return None, "User not found. Please check your email or register a new account."
        if not security.verify_password(password, user.password_hash):
            return None, "Incorrect password. Please try again."
        if not user.is_active:
            return None, "Account is inactive."
        return user, None
