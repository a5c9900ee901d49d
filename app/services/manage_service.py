"""
Account management: favorite lines, linked logins, Alexa link and deletion.

Every write goes through the document store's ETag-conditioned replace. An
ETag mismatch is reported to the caller as ``UpdateResult.CONFLICT``; nothing
here retries, the caller re-reads and resubmits.
"""

from structlog import get_logger

from app.config import settings
from app.core.exceptions import (
    BadRequestException,
    InvalidLinesException,
    LoginAlreadyAssociatedException,
)
from app.schemas.auth import ExternalIdentity
from app.schemas.manage import CurrentLogin, ManageResponse, UpdateResult
from app.schemas.users import UserDocument, UserLogin
from app.services.account_service import AccountService
from app.services.auth_service import AuthService
from app.services.line_validator import LineValidator

logger = get_logger(__name__)


class ManageService:
    """Applies account changes for the signed-in user."""

    def __init__(
        self,
        accounts: AccountService,
        auth: AuthService,
        line_validator: LineValidator,
    ):
        self.accounts = accounts
        self.auth = auth
        self.line_validator = line_validator

    def get_manage_view(self, user: UserDocument) -> ManageResponse:
        """Describe the user's linked logins and the providers they could add."""
        current_logins = sorted(
            (
                CurrentLogin(
                    login_provider=login.login_provider,
                    provider_key=login.provider_key,
                    provider_display_name=login.provider_display_name or login.login_provider,
                )
                for login in user.logins
            ),
            key=lambda p: (p.provider_display_name, p.login_provider, p.provider_key),
        )

        linked = {login.login_provider for login in user.logins}
        other_logins = [name for name in settings.enabled_providers if name not in linked]

        return ManageResponse(
            current_logins=current_logins,
            other_logins=other_logins,
            etag=user.etag or "",
            is_linked_to_alexa=bool(user.alexa_token and user.alexa_token.strip()),
        )

    async def update_line_preferences(
        self,
        user: UserDocument,
        favorite_lines: list[str] | None,
        etag: str | None,
    ) -> UpdateResult:
        """
        Update the user's favorite lines.

        The write is conditioned on the ETag the caller supplied, not the one
        last read, so a caller editing a stale copy gets a conflict.

        Raises:
            BadRequestException: If no ETag was supplied
            InvalidLinesException: If any line is not an active line
            LineDataUnavailableException: If the line list cannot be fetched
        """
        if etag is None or not etag.strip():
            raise BadRequestException()

        if favorite_lines is not None and favorite_lines == user.favorite_lines:
            return UpdateResult.NOT_ATTEMPTED

        invalid_lines = await self.line_validator.get_invalid_lines(favorite_lines)

        if invalid_lines:
            logger.info("invalid_line_preferences", user_id=user.id, lines=invalid_lines)
            raise InvalidLinesException(invalid_lines)

        logger.info("updating_line_preferences", user_id=user.id)

        existing_lines = user.favorite_lines
        new_lines = sorted(favorite_lines or [])

        updated = await self.accounts.update_user(
            user.model_copy(update={"favorite_lines": new_lines}),
            etag,
        )

        if updated is None:
            logger.warning("updating_line_preferences_failed", user_id=user.id, etag=etag)
            return UpdateResult.CONFLICT

        user.favorite_lines = updated.favorite_lines
        user.etag = updated.etag

        logger.info(
            "updated_line_preferences",
            user_id=user.id,
            previous=existing_lines,
            current=new_lines,
        )
        return UpdateResult.APPLIED

    async def link_account(self, user: UserDocument, identity: ExternalIdentity) -> UserDocument | None:
        """
        Link an external login to the user and capture its claims.

        Returns:
            The updated user, or None if adding the login hit a write conflict

        Raises:
            BadRequestException: If the provider is not enabled
            LoginAlreadyAssociatedException: If another user has the login
        """
        provider = identity.login_provider

        if not settings.is_provider_enabled(provider):
            raise BadRequestException(f"Sign-in with {provider} is not enabled.")

        owner = await self.accounts.get_user_by_login(provider, identity.provider_key)

        if owner is not None and owner.id != user.id:
            logger.warning("adding_external_login_failed", user_id=user.id, provider=provider)
            raise LoginAlreadyAssociatedException(provider)

        logger.info("adding_external_login", user_id=user.id, provider=provider)

        if user.find_login(provider, identity.provider_key) is None:
            linked = user.model_copy(
                update={
                    "logins": [
                        *user.logins,
                        UserLogin(
                            login_provider=provider,
                            provider_key=identity.provider_key,
                            provider_display_name=identity.provider_display_name,
                        ),
                    ]
                }
            )

            updated = await self.accounts.update_user(linked, user.etag)

            if updated is None:
                logger.warning("adding_external_login_failed", user_id=user.id, provider=provider)
                return None

            user = updated

        logger.info("added_external_login", user_id=user.id, provider=provider)

        claimed = await self.update_claims(user, identity)

        if claimed is None:
            # The login is already committed; only the claims are missing.
            logger.error("updating_user_claims_failed", user_id=user.id, provider=provider)
            return user

        logger.info("updated_user_claims", user_id=user.id, provider=provider)
        return claimed

    async def update_claims(self, user: UserDocument, identity: ExternalIdentity) -> UserDocument | None:
        """
        Add the identity's claims the user does not already hold.

        Claims are never removed. The user is only written if a claim was
        added.

        Returns:
            The user, or None on a write conflict
        """
        held = {claim.key() for claim in user.role_claims}
        missing = []

        for claim in identity.claims:
            if claim.key() not in held:
                missing.append(claim)
                held.add(claim.key())

        if not missing:
            return user

        return await self.accounts.update_user(
            user.model_copy(update={"role_claims": [*user.role_claims, *missing]}),
            user.etag,
        )

    async def remove_account_link(
        self,
        user: UserDocument,
        login_provider: str | None,
        provider_key: str | None,
    ) -> str | None:
        """
        Unlink an external login from the user.

        Returns:
            A refreshed session token if the login was removed, otherwise None

        Raises:
            BadRequestException: If the login is not specified, or it is the
                user's only login
        """
        if not login_provider or not login_provider.strip() or not provider_key or not provider_key.strip():
            raise BadRequestException()

        logins = [login for login in user.logins if not login.matches(login_provider, provider_key)]

        if len(logins) == len(user.logins):
            logger.warning(
                "removing_external_login_failed",
                user_id=user.id,
                provider=login_provider,
                error="login not found",
            )
            return None

        if not logins:
            raise BadRequestException("The only sign-in method for an account cannot be removed.")

        logger.info("removing_external_login", user_id=user.id, provider=login_provider)

        updated = await self.accounts.update_user(user.model_copy(update={"logins": logins}), user.etag)

        if updated is None:
            logger.warning(
                "removing_external_login_failed",
                user_id=user.id,
                provider=login_provider,
                error="conflict",
            )
            return None

        logger.info("removed_external_login", user_id=user.id, provider=login_provider)

        # The session was issued for the old set of logins, so sign in again
        return self.auth.create_session(updated)

    async def remove_alexa_link(self, user: UserDocument, etag: str | None) -> UpdateResult:
        """
        Remove the user's Alexa access token.

        Raises:
            BadRequestException: If no ETag was supplied
        """
        if etag is None or not etag.strip():
            raise BadRequestException()

        logger.info("removing_alexa_link", user_id=user.id)

        updated = await self.accounts.update_user(user.model_copy(update={"alexa_token": None}), etag)

        if updated is None:
            logger.warning("removing_alexa_link_failed", user_id=user.id, etag=etag)
            return UpdateResult.CONFLICT

        user.alexa_token = None
        user.etag = updated.etag

        logger.info("removed_alexa_link", user_id=user.id)
        return UpdateResult.APPLIED

    async def delete_account(self, user: UserDocument) -> bool:
        """
        Delete the user's account and end all of their sessions.

        Returns:
            True if the account was deleted
        """
        logger.info("deleting_user", user_id=user.id)

        deleted = await self.accounts.delete_user(user.id)

        if not deleted:
            logger.warning("deleting_user_failed", user_id=user.id)
            return False

        self.auth.revoke_sessions(user.id)

        logger.info("deleted_user", user_id=user.id)
        return True
