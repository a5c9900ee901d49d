"""Account management endpoints."""

from fastapi import APIRouter, status

from app.core.exceptions import ConflictException
from app.dependencies import AuthServiceDep, CurrentUser, ManageServiceDep
from app.schemas.manage import (
    LinkAccountRequest,
    ManageResponse,
    ManageResult,
    RemoveAccountLinkRequest,
    RemoveAlexaLinkRequest,
    UpdateLinePreferencesRequest,
    UpdateLinePreferencesResponse,
    UpdateResult,
)

router = APIRouter()


@router.get("", response_model=ManageResponse, summary="Get the account management view")
async def get_manage_view(current_user: CurrentUser, manage: ManageServiceDep) -> ManageResponse:
    """Get the signed-in user's linked logins, the providers they could add and the current ETag."""
    return manage.get_manage_view(current_user)


@router.post(
    "/update-line-preferences",
    response_model=UpdateLinePreferencesResponse,
    summary="Update favorite lines",
)
async def update_line_preferences(
    request: UpdateLinePreferencesRequest,
    current_user: CurrentUser,
    manage: ManageServiceDep,
) -> UpdateLinePreferencesResponse:
    """
    Update the signed-in user's favorite lines.

    The update only applies if ``etag`` is still the user's current ETag.

    Raises:
        BadRequestException: If no ETag was supplied
        InvalidLinesException: If any of the lines is not valid
        ConflictException: If the user was modified since the ETag was read
    """
    result = await manage.update_line_preferences(current_user, request.favorite_lines, request.etag)

    if result == UpdateResult.CONFLICT:
        raise ConflictException("Your preferences were changed elsewhere. Reload and try again.")

    return UpdateLinePreferencesResponse(
        updated=True if result == UpdateResult.APPLIED else None,
        result=result,
        etag=current_user.etag,
    )


@router.post("/link-account", response_model=ManageResult, summary="Link an external login")
async def link_account(
    request: LinkAccountRequest,
    current_user: CurrentUser,
    auth: AuthServiceDep,
    manage: ManageServiceDep,
) -> ManageResult:
    """
    Link another external login to the signed-in user.

    Raises:
        UnauthorizedException: If the identity framework token is invalid
        LoginAlreadyAssociatedException: If the login belongs to another user
    """
    identity = await auth.verify_external_identity(request.id_token)
    user = await manage.link_account(current_user, identity)

    if user is None:
        return ManageResult(
            succeeded=False,
            message=f"Your {identity.login_provider} account could not be linked.",
            etag=current_user.etag,
        )

    return ManageResult(
        succeeded=True,
        message=f"Your {identity.login_provider} account was linked.",
        etag=user.etag,
    )


@router.post("/remove-account-link", response_model=ManageResult, summary="Unlink an external login")
async def remove_account_link(
    request: RemoveAccountLinkRequest,
    current_user: CurrentUser,
    manage: ManageServiceDep,
) -> ManageResult:
    """
    Unlink an external login from the signed-in user.

    A new session token is returned when the login is removed.

    Raises:
        BadRequestException: If the login is not specified or it is the
            account's only login
    """
    access_token = await manage.remove_account_link(
        current_user,
        request.login_provider,
        request.provider_key,
    )

    if access_token is None:
        return ManageResult(succeeded=False, message="The login could not be removed.", etag=current_user.etag)

    return ManageResult(succeeded=True, message="The login was removed.", access_token=access_token)


@router.post("/remove-alexa-link", response_model=ManageResult, summary="Unlink the Alexa skill")
async def remove_alexa_link(
    request: RemoveAlexaLinkRequest,
    current_user: CurrentUser,
    manage: ManageServiceDep,
) -> ManageResult:
    """
    Remove the Alexa skill's access to the signed-in user's preferences.

    Raises:
        BadRequestException: If no ETag was supplied
        ConflictException: If the user was modified since the ETag was read
    """
    result = await manage.remove_alexa_link(current_user, request.etag)

    if result == UpdateResult.CONFLICT:
        raise ConflictException("Your account was changed elsewhere. Reload and try again.")

    return ManageResult(succeeded=True, message="Alexa was unlinked.", etag=current_user.etag)


@router.post(
    "/delete-account",
    response_model=ManageResult,
    status_code=status.HTTP_200_OK,
    summary="Delete the account",
)
async def delete_account(current_user: CurrentUser, manage: ManageServiceDep) -> ManageResult:
    """Delete the signed-in user's account and end all of their sessions."""
    if not await manage.delete_account(current_user):
        return ManageResult(succeeded=False, message="Your account could not be deleted.")

    return ManageResult(succeeded=True, message="Your account was deleted.")
