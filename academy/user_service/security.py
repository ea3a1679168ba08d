from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from academy.config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# capability -> roles holding it
CAPABILITIES = {
    "learn": {"student", "instructor", "admin"},
    "grade": {"admin"},
    "manage_enrollments": {"admin"},
}


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


@dataclass(frozen=True)
class AuthSession:
    """The authenticated principal behind a request."""

    user_id: int
    email: str
    role: str
    admin_domain: str = ""

    @property
    def is_admin(self) -> bool:
        if self.role == "admin":
            return True
        return bool(self.admin_domain) and self.email.lower().endswith("@" + self.admin_domain)

    def can(self, capability: str) -> bool:
        if self.is_admin:
            return True
        return self.role in CAPABILITIES.get(capability, set())


def create_access_token(data: dict, settings: Settings) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_session(token: str, settings: Settings) -> Optional[AuthSession]:
    """Session for a valid token, ``None`` for a missing, expired or forged one."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except jwt.PyJWTError:
        return None

    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        return None
    return AuthSession(
        user_id=user_id,
        email=str(payload.get("email", "")),
        role=str(payload.get("role", "student")),
        admin_domain=settings.admin_domain,
    )
