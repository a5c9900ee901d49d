"""Sign-in and sign-out endpoints."""

from fastapi import APIRouter, Response, status

from app.dependencies import AuthServiceDep, SessionToken
from app.schemas.auth import SessionResponse, SignInRequest
from app.schemas.users import UserResponse

router = APIRouter()


@router.post(
    "/sign-in",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in with an external provider",
)
async def sign_in(request: SignInRequest, auth: AuthServiceDep) -> SessionResponse:
    """
    Exchange an identity framework token for a session.

    The user is registered the first time they sign in with a login that is
    not linked to any account.

    Raises:
        UnauthorizedException: If the token is invalid, the provider is not
            enabled or the email address belongs to another account
    """
    identity = await auth.verify_external_identity(request.id_token)
    user, access_token = await auth.sign_in(identity)

    return SessionResponse(access_token=access_token, user=UserResponse.from_user(user))


@router.post(
    "/sign-out",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out",
)
async def sign_out(token: SessionToken, auth: AuthServiceDep) -> Response:
    """End the current session."""
    auth.sign_out(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
