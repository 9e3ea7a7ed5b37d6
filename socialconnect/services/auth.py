"""
Authentication service.
"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socialconnect.database import get_db
from socialconnect.models.user import User
from socialconnect.security.session import AUTHENTICATED_USER_KEY
from socialconnect.utils.security import verify_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """
    The signed-in user, if any.
    
    A Bearer access token wins over the session; an invalid token is an
    error rather than an anonymous request.
    """
    if token:
        payload = verify_token(token, token_type="access")
        if payload is None or payload.get("sub") is None:
            raise _credentials_exception()
        user_id = payload["sub"]
    else:
        user_id = request.session.get(AUTHENTICATED_USER_KEY)
        if user_id is None:
            return None
    
    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()
    
    if user is None:
        if token:
            raise _credentials_exception()
        request.session.pop(AUTHENTICATED_USER_KEY, None)
        return None
    
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )
    
    return user


async def get_current_user(
    user: User | None = Depends(get_optional_user),
) -> User:
    """Get the current authenticated user from a JWT or the session."""
    if user is None:
        raise _credentials_exception()
    return user
