"""Alexa skill account linking."""

import secrets
from urllib.parse import urlencode

from structlog import get_logger

from app.config import Settings, settings
from app.core.exceptions import BadRequestException, ConflictException
from app.schemas.users import UserDocument
from app.services.account_service import AccountService

logger = get_logger(__name__)

# 50 bytes of entropy, URL-safe
ACCESS_TOKEN_BYTES = 50


class AlexaService:
    """Issues the access token an Alexa skill uses to read a user's preferences."""

    def __init__(self, accounts: AccountService, config: Settings | None = None):
        self.accounts = accounts
        self.config = config or settings

    def validate_request(self, client_id: str | None, response_type: str | None, redirect_uri: str | None) -> None:
        """
        Check an implicit-grant authorization request came from the skill.

        Raises:
            BadRequestException: If the client, grant type or redirect is not allowed
        """
        if not self.config.alexa_client_id or client_id != self.config.alexa_client_id:
            logger.warning("alexa_link_invalid_client_id", client_id=client_id)
            raise BadRequestException("The client ID is not valid.")

        if response_type != "token":
            logger.warning("alexa_link_invalid_response_type", response_type=response_type)
            raise BadRequestException("Only the token response type is supported.")

        if not redirect_uri or redirect_uri not in self.config.alexa_redirect_urls:
            logger.warning("alexa_link_invalid_redirect_uri", redirect_uri=redirect_uri)
            raise BadRequestException("The redirect URI is not valid.")

    async def authorize(
        self,
        user: UserDocument,
        client_id: str | None,
        response_type: str | None,
        redirect_uri: str | None,
        state: str | None,
    ) -> str:
        """
        Link the user's account to the Alexa skill.

        A new access token replaces any existing one.

        Returns:
            The URL to redirect the skill back to, carrying the token

        Raises:
            BadRequestException: If the request is not valid
            ConflictException: If the user was modified concurrently
        """
        self.validate_request(client_id, response_type, redirect_uri)

        access_token = secrets.token_urlsafe(ACCESS_TOKEN_BYTES)

        updated = await self.accounts.update_user(
            user.model_copy(update={"alexa_token": access_token}),
            user.etag,
        )

        if updated is None:
            logger.warning("alexa_link_failed", user_id=user.id)
            raise ConflictException("The account was modified. Please try again.")

        logger.info("alexa_link_created", user_id=user.id)

        fragment = urlencode(
            {
                "state": state or "",
                "access_token": access_token,
                "token_type": "Bearer",
            }
        )

        return f"{redirect_uri}#{fragment}"
