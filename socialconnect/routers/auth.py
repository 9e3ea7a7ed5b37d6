"""
Authentication router.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from socialconnect.connect import ConnectionFactoryRegistry
from socialconnect.database import get_db
from socialconnect.models.user import User
from socialconnect.repositories.sql import SQLUsersConnectionRepository
from socialconnect.schemas.user import (
    UserCreate,
    UserRead,
    Token,
    LoginRequest,
    RefreshRequest,
)
from socialconnect.security import AUTHENTICATED_USER_KEY, ProviderSignInAttempts, session_store_for
from socialconnect.services.auth import get_current_user
from socialconnect.services.social import (
    get_connection_factory_registry,
    get_users_connection_repository,
)
from socialconnect.utils.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    create_refresh_token,
    verify_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_tokens(user: User) -> Token:
    return Token(
        access_token=create_access_token(data={"sub": user.id}),
        refresh_token=create_refresh_token(data={"sub": user.id}),
    )


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    users_connection_repository: SQLUsersConnectionRepository = Depends(get_users_connection_repository),
    connection_factory_registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
) -> User:
    """
    Register a new user.
    
    Provider accounts that failed to sign in earlier in this session are
    connected to the new user, who is then signed in.
    """
    criteria = [User.username == user_data.username]
    if user_data.email:
        criteria.append(User.email == user_data.email)
    result = await db.execute(
        select(User).where(or_(*criteria))
    )
    if result.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email already registered",
        )
    
    user = User(
        username=user_data.username,
        email=user_data.email,
        full_name=user_data.full_name,
        hashed_password=get_password_hash(user_data.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    
    user_id = user.id
    session = session_store_for(request)
    added = await ProviderSignInAttempts(session).add_connections(
        user_id,
        users_connection_repository,
        connection_factory_registry,
    )
    if added:
        logger.info("Connected %d pending provider account(s) to new user %s", len(added), user_id)
    session.set(AUTHENTICATED_USER_KEY, user_id)
    # A skipped duplicate rolls the session back and expires the user
    await db.refresh(user)
    
    return user


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Token:
    """Login with a username or email and get JWT tokens."""
    result = await db.execute(
        select(User).where(
            or_(User.username == credentials.login, User.email == credentials.login)
        )
    )
    user = result.scalars().first()
    
    # Provider-only accounts have no password
    if not user or not user.hashed_password or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )
    
    request.session[AUTHENTICATED_USER_KEY] = user.id
    return _issue_tokens(user)


@router.post("/refresh", response_model=Token)
async def refresh_tokens(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> Token:
    """Refresh access token using refresh token."""
    payload = verify_token(request.refresh_token, token_type="refresh")
    
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )
    
    result = await db.execute(
        select(User).where(User.id == payload.get("sub"))
    )
    user = result.scalar_one_or_none()
    
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    
    return _issue_tokens(user)


@router.get("/me", response_model=UserRead)
async def get_me(
    current_user: User = Depends(get_current_user),
) -> User:
    """Get current authenticated user."""
    return current_user


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request) -> None:
    """Clear the session, including pending sign-in attempts."""
    request.session.clear()
