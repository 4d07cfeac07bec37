"""Authentication routes: register, login, logout, current user, agent status.

Also hosts the session and role dependencies used by every other router.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.config import get_settings
from leadmarket.domain.enums import UserRole
from leadmarket.domain.models import User
from leadmarket.domain.schemas import (
    AgentStatusResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
    UserUpdate,
)
from leadmarket.infra.database import get_db
from leadmarket.services.auth_service import (
    authenticate,
    create_session,
    get_agent_profile,
    register_user,
    resolve_session,
    revoke_session,
)
from leadmarket.services.errors import MarketplaceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def http_error(exc: MarketplaceError) -> HTTPException:
    """Translate a service exception into the matching HTTP error."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)


async def get_current_user_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency: resolve the session cookie to a user, else 401."""
    token = request.cookies.get(get_settings().session_cookie_name)
    user = await resolve_session(db, token) if token else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


def require_role(*roles: UserRole):
    """Factory: dependency that checks user has one of the required roles."""
    allowed = {role.value for role in roles}

    async def checker(user: User = Depends(get_current_user_dep)):
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return checker


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    data: RegisterRequest, response: Response, db: AsyncSession = Depends(get_db)
):
    try:
        user = await register_user(db, data)
    except MarketplaceError as e:
        raise http_error(e)
    token = await create_session(db, user)
    await db.commit()
    _set_session_cookie(response, token)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=UserResponse)
async def login(data: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    user = await authenticate(db, data.username, data.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    token = await create_session(db, user)
    await db.commit()
    _set_session_cookie(response, token)
    logger.info("User %s logged in", user.id)
    return UserResponse.model_validate(user)


@router.post("/logout")
async def logout(request: Request, response: Response, db: AsyncSession = Depends(get_db)):
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        await revoke_session(db, token)
        await db.commit()
    response.delete_cookie(settings.session_cookie_name, samesite="lax")
    return {"ok": True}


@router.get("/user", response_model=UserResponse)
async def me(user: User = Depends(get_current_user_dep)):
    return UserResponse.model_validate(user)


@router.patch("/user", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    if data.first_name is not None:
        user.first_name = data.first_name
    if data.last_name is not None:
        user.last_name = data.last_name
    if data.phone is not None:
        user.phone = data.phone
    if data.whatsapp_preferred is not None:
        user.whatsapp_preferred = data.whatsapp_preferred
    await db.commit()
    return UserResponse.model_validate(user)


@router.get("/user/agent-status", response_model=AgentStatusResponse)
async def agent_status(
    user: User = Depends(get_current_user_dep), db: AsyncSession = Depends(get_db)
):
    if user.role != UserRole.AGENT.value:
        raise HTTPException(status_code=403, detail="User is not an agent")
    profile = await get_agent_profile(db, user.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Agent profile not found")
    return AgentStatusResponse(status=profile.verification_status)
