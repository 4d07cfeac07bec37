"""Authentication service: password hashing, registration and server-side sessions."""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.config import get_settings
from leadmarket.domain.enums import NotificationType, UserRole, VerificationStatus
from leadmarket.domain.models import AgentProfile, User, UserSession
from leadmarket.domain.schemas import RegisterRequest
from leadmarket.domain.timeutil import utcnow
from leadmarket.services.errors import ValidationFailed
from leadmarket.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ---------------------------------------------------------------------------
# Session cookie tokens
# ---------------------------------------------------------------------------


def create_session_token(session_id: str, expires_at: datetime) -> str:
    payload = {"sid": session_id, "exp": expires_at.replace(tzinfo=timezone.utc)}
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.session_secret, algorithms=[settings.session_algorithm])
    except JWTError:
        return None


async def create_session(db: AsyncSession, user: User) -> str:
    """Persist a new session row for ``user`` and return the signed cookie value."""
    expires_at = utcnow() + timedelta(days=settings.session_max_age_days)
    session_row = UserSession(
        id=secrets.token_urlsafe(32),
        user_id=user.id,
        expires_at=expires_at,
    )
    db.add(session_row)
    await db.flush()
    return create_session_token(session_row.id, expires_at)


async def resolve_session(db: AsyncSession, token: str) -> User | None:
    """Return the user behind a session cookie, or None if invalid, revoked or expired."""
    payload = decode_session_token(token)
    if not payload or "sid" not in payload:
        return None
    result = await db.execute(
        select(UserSession).where(
            UserSession.id == payload["sid"],
            UserSession.expires_at > utcnow(),
        )
    )
    session_row = result.scalar_one_or_none()
    if session_row is None:
        return None
    return await db.get(User, session_row.user_id)


async def revoke_session(db: AsyncSession, token: str) -> None:
    payload = decode_session_token(token)
    if payload and "sid" in payload:
        await db.execute(delete(UserSession).where(UserSession.id == payload["sid"]))


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_agent_profile(db: AsyncSession, user_id: int) -> AgentProfile | None:
    result = await db.execute(select(AgentProfile).where(AgentProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def authenticate(db: AsyncSession, username: str, password: str) -> User | None:
    """Check credentials. Unknown user and wrong password are indistinguishable."""
    user = await get_user_by_username(db, username)
    if user is None:
        pwd_context.dummy_verify()
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    """Create a seller or agent account.

    Agents also get a pending AgentProfile, and every admin is told a
    verification request is waiting. Flushes but does not commit.
    """
    if await get_user_by_username(db, data.username):
        raise ValidationFailed("Username already exists")
    if await get_user_by_email(db, data.email):
        raise ValidationFailed("Email already exists")

    user = User(
        username=data.username,
        password_hash=hash_password(data.password),
        email=data.email,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role=data.role.value,
        whatsapp_preferred=data.whatsapp_preferred,
    )
    db.add(user)
    await db.flush()

    if data.role == UserRole.AGENT:
        db.add(AgentProfile(
            user_id=user.id,
            agency_name=data.agency_name,
            license_document=data.license_document,
            verification_status=VerificationStatus.PENDING.value,
            balance=0.0,
        ))
        await db.flush()
        await NotificationService(db).notify_admins(
            title="New Agent Registration",
            message=(
                f"{user.first_name} {user.last_name} ({user.email}) has registered "
                "as an agent and is waiting for verification."
            ),
            type=NotificationType.AGENT_VERIFICATION,
            link_url="/admin/agents",
        )

    logger.info("Registered %s user %s (id=%s)", user.role, user.username, user.id)
    return user
