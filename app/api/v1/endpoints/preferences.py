"""Preferences API read by the Alexa skill."""

from typing import Annotated

from fastapi import APIRouter, Header, status

from app.core.bearer import authorize_access_token
from app.dependencies import AccountServiceDep, AdminUser
from app.schemas.errors import ErrorResponse
from app.schemas.users import CountResponse, PreferencesResponse

router = APIRouter()


@router.get(
    "/preferences",
    response_model=PreferencesResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Get the preferences for an access token",
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)
async def get_preferences(
    accounts: AccountServiceDep,
    authorization: Annotated[str | None, Header()] = None,
) -> PreferencesResponse:
    """
    Get the favorite lines of the user an Alexa access token belongs to.

    The token is the one issued when the user linked the skill to their
    account, sent as ``Authorization: Bearer <token>``.

    Raises:
        AuthorizationFailure: If the header is missing, malformed, not a
            bearer token or does not match any user
    """
    user = await authorize_access_token(authorization, accounts)

    return PreferencesResponse(favorite_lines=user.favorite_lines, user_id=user.id)


@router.get(
    "/_count",
    response_model=CountResponse,
    status_code=status.HTTP_200_OK,
    summary="Count the registered users",
)
async def get_user_count(accounts: AccountServiceDep, admin_user: AdminUser) -> CountResponse:
    """Count the registered users, bypassing the cached total."""
    count = await accounts.get_user_count(use_cache=False)
    return CountResponse(count=count)
