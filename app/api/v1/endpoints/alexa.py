"""Alexa account linking endpoint."""

from fastapi import APIRouter, Query, status
from fastapi.responses import RedirectResponse

from app.dependencies import AlexaServiceDep, CurrentUser

router = APIRouter()


@router.get(
    "/authorize",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
    summary="Link the Alexa skill",
)
async def authorize(
    current_user: CurrentUser,
    alexa: AlexaServiceDep,
    state: str | None = Query(default=None),
    client_id: str | None = Query(default=None),
    response_type: str | None = Query(default=None),
    redirect_uri: str | None = Query(default=None),
) -> RedirectResponse:
    """
    Implicit grant authorization for the Alexa skill.

    Issues a new access token for the signed-in user and redirects back to
    the skill with it in the URL fragment.

    Raises:
        BadRequestException: If the client, response type or redirect URI is not allowed
        ConflictException: If the user was modified concurrently
    """
    location = await alexa.authorize(current_user, client_id, response_type, redirect_uri, state)
    return RedirectResponse(location, status_code=status.HTTP_302_FOUND)
