"""Authentication service for external sign-in and sessions."""

from datetime import UTC, datetime

from structlog import get_logger

from app.config import settings
from app.core.exceptions import UnauthorizedException
from app.core.firebase import to_external_identity, verify_firebase_token
from app.core.redis_client import CacheManager
from app.core.security import create_session_token, decode_session_token
from app.schemas.auth import ExternalIdentity
from app.schemas.users import UserDocument, UserLogin
from app.services.account_service import AccountService

logger = get_logger(__name__)


class AuthService:
    """
    Signs users in with external identities and manages their sessions.

    Sessions are JWTs. Signing out blacklists a single token; revoking a
    user's sessions records a cut-off so every token issued before it is
    rejected.
    """

    def __init__(self, accounts: AccountService, cache_manager: CacheManager):
        """Initialize auth service with the account service and cache manager."""
        self.accounts = accounts
        self.cache = cache_manager

    @staticmethod
    def _blacklist_key(jti: str) -> str:
        return f"session:blacklist:{jti}"

    @staticmethod
    def _revoked_key(user_id: str) -> str:
        return f"session:revoked:{user_id}"

    async def verify_external_identity(self, id_token: str) -> ExternalIdentity:
        """
        Verify an identity framework token and get the identity it asserts.

        Raises:
            UnauthorizedException: If the token is invalid or the provider
                is not enabled
        """
        try:
            decoded_token = await verify_firebase_token(id_token)
            identity = to_external_identity(decoded_token)
        except ValueError as e:
            raise UnauthorizedException(str(e)) from e

        if not settings.is_provider_enabled(identity.login_provider):
            logger.warning("sign_in_provider_disabled", provider=identity.login_provider)
            raise UnauthorizedException(f"Sign-in with {identity.login_provider} is not enabled.")

        return identity

    async def sign_in(self, identity: ExternalIdentity) -> tuple[UserDocument, str]:
        """
        Sign in with an external identity, registering the user on first use.

        Returns:
            Tuple of (user, session token)

        Raises:
            UnauthorizedException: If the identity's email belongs to an
                account that has not linked this provider
        """
        user = await self.accounts.get_user_by_login(identity.login_provider, identity.provider_key)

        if user is None:
            if identity.email and await self.accounts.get_user_by_email(identity.email):
                logger.info(
                    "sign_in_email_already_registered",
                    provider=identity.login_provider,
                )
                raise UnauthorizedException(
                    "An account with this email address already exists. "
                    f"Sign in with your existing provider and link {identity.login_provider} to it."
                )

            user = await self.accounts.create_user(self._new_user(identity))
            logger.info("user_registered", user_id=user.id, provider=identity.login_provider)

        logger.info("user_signed_in", user_id=user.id, provider=identity.login_provider)
        return user, self.create_session(user)

    def create_session(self, user: UserDocument) -> str:
        """Create a session token for a user."""
        return create_session_token(user.id)

    def sign_out(self, token: str) -> None:
        """End the session a token belongs to."""
        payload = decode_session_token(token)

        if payload is None:
            return

        ttl = max(int(payload["exp"] - datetime.now(UTC).timestamp()), 1)
        self.cache.set(self._blacklist_key(payload["jti"]), "1", ttl=ttl)

        logger.info("user_signed_out", user_id=payload["sub"])

    def revoke_sessions(self, user_id: str) -> None:
        """End every session issued to a user so far."""
        self.cache.set(
            self._revoked_key(user_id),
            str(int(datetime.now(UTC).timestamp())),
            ttl=settings.session_expire_minutes * 60,
        )

        logger.info("user_sessions_revoked", user_id=user_id)

    async def get_current_user(self, token: str) -> UserDocument:
        """
        Get the user a session token belongs to.

        Raises:
            UnauthorizedException: If the session is invalid, has ended or
                the user no longer exists
        """
        payload = decode_session_token(token)

        if payload is None:
            raise UnauthorizedException("Could not validate credentials")

        user_id = payload.get("sub")
        if not isinstance(user_id, str):
            raise UnauthorizedException("Could not validate credentials")

        if self.cache.exists(self._blacklist_key(payload.get("jti", ""))):
            raise UnauthorizedException("Session has ended")

        revoked_at = self.cache.get(self._revoked_key(user_id))
        if revoked_at is not None and payload.get("iat", 0) <= int(revoked_at):
            raise UnauthorizedException("Session has ended")

        user = await self.accounts.get_user_by_id(user_id)

        if user is None:
            raise UnauthorizedException("User not found")

        return user

    @staticmethod
    def _new_user(identity: ExternalIdentity) -> UserDocument:
        return UserDocument(
            email=identity.email,
            email_normalized=identity.email.upper() if identity.email else None,
            user_name=identity.user_name,
            user_name_normalized=identity.user_name.upper() if identity.user_name else None,
            given_name=identity.given_name,
            surname=identity.surname,
            logins=[
                UserLogin(
                    login_provider=identity.login_provider,
                    provider_key=identity.provider_key,
                    provider_display_name=identity.provider_display_name,
                )
            ],
            role_claims=list(identity.claims),
        )
