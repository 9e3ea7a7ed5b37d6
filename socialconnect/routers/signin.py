"""
Sign-in router: provider sign-in through the social authentication filter.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from socialconnect.config import get_settings
from socialconnect.models.user import User
from socialconnect.schemas.connection import SignInAttemptRead
from socialconnect.security import ProviderSignInAttempts, SocialAuthenticationFilter, session_store_for
from socialconnect.services.auth import get_optional_user
from socialconnect.services.social import get_social_authentication_filter, social_request_for

router = APIRouter(prefix="/signin", tags=["Sign in"])

settings = get_settings()


@router.get("/attempts", response_model=list[SignInAttemptRead])
async def list_sign_in_attempts(request: Request) -> list[SignInAttemptRead]:
    """Provider accounts from this session waiting for the user to sign up."""
    attempts = ProviderSignInAttempts(session_store_for(request))
    return [SignInAttemptRead.from_data(data) for data in attempts.get_all()]


@router.api_route("/{provider_id}", methods=["GET", "POST"])
async def signin(
    provider_id: str,
    request: Request,
    current_user: User | None = Depends(get_optional_user),
    social_filter: SocialAuthenticationFilter = Depends(get_social_authentication_filter),
) -> RedirectResponse:
    """
    Sign in with a provider, or connect it when a user is already signed in.
    
    Both the initial request and the provider's callback land here.
    """
    social_request = social_request_for(request, current_user.id if current_user else None)
    if not social_filter.requires_authentication(social_request):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider: {provider_id}",
        )
    
    result = await social_filter.do_filter(social_request)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sign-in could not be completed",
        )
    
    return RedirectResponse(
        result.redirect_url or settings.post_login_url,
        status_code=status.HTTP_303_SEE_OTHER,
    )
