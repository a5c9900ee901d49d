"""Account service for user record access."""

from structlog import get_logger

from app.config import settings
from app.core.redis_client import CacheManager
from app.schemas.users import UserDocument
from app.services.document_service import DocumentService

logger = get_logger(__name__)


class AccountService:
    """Service for reading and writing user accounts."""

    USER_COUNT_CACHE_KEY = "users:count"

    def __init__(self, documents: DocumentService, cache_manager: CacheManager | None = None):
        """Initialize service with the document store and optional cache manager."""
        self.documents = documents
        self.cache = cache_manager

    async def get_user_count(self, use_cache: bool) -> int:
        """
        Get the number of registered users.

        Args:
            use_cache: Whether a recently cached count may be returned

        Returns:
            The total number of user documents
        """
        if use_cache and self.cache:
            cached = self.cache.get(self.USER_COUNT_CACHE_KEY)
            if cached is not None:
                return int(cached)

        count = await self.documents.count()

        if self.cache:
            self.cache.set(
                self.USER_COUNT_CACHE_KEY,
                str(count),
                ttl=settings.user_count_cache_ttl,
            )

        return count

    async def get_user_by_access_token(self, access_token: str) -> UserDocument | None:
        """
        Get the user whose Alexa token is the given access token.

        If more than one user holds the token the first one found is returned.
        """
        matches = await self.documents.get_where("alexaToken", access_token)

        if len(matches) > 1:
            logger.warning("duplicate_access_token", count=len(matches))

        return matches[0] if matches else None

    async def get_user_by_id(self, user_id: str) -> UserDocument | None:
        """Get user by ID."""
        return await self.documents.get(user_id)

    async def get_user_by_login(self, login_provider: str, provider_key: str) -> UserDocument | None:
        """Get the user an external login is linked to."""
        return await self.documents.get_by_login(login_provider, provider_key)

    async def get_user_by_email(self, email: str) -> UserDocument | None:
        """Get user by email, ignoring case."""
        matches = await self.documents.get_where("emailNormalized", email.upper())
        return matches[0] if matches else None

    async def create_user(self, user: UserDocument) -> UserDocument:
        """Create a new user."""
        await self.documents.create(user)
        self._invalidate_count()

        logger.info("user_created", user_id=user.id)
        return user

    async def update_user(self, user: UserDocument, etag: str | None) -> UserDocument | None:
        """
        Replace a user's record if ``etag`` is still its current revision.

        Returns:
            The updated user, or None on a write conflict
        """
        return await self.documents.replace(user, etag)

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user (hard delete)."""
        deleted = await self.documents.delete(user_id)

        if deleted:
            self._invalidate_count()

        return deleted

    def _invalidate_count(self) -> None:
        if self.cache:
            self.cache.delete(self.USER_COUNT_CACHE_KEY)
