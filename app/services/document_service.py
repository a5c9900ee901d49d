"""Document store for user records."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.core.exceptions import ConflictException
from app.models.users import document_field, user_logins, users
from app.schemas.users import UserDocument

logger = get_logger(__name__)

# Top-level document fields that can be queried with get_where()
QUERYABLE_FIELDS = frozenset({"alexaToken", "email", "emailNormalized", "userNameNormalized"})


def new_etag() -> str:
    """Generate a revision token."""
    return f'"{uuid4().hex}"'


class DocumentService:
    """
    CRUD and query over the collection of user documents.

    Writes are single transactions. ``replace()`` is a compare-and-swap on
    the stored ETag, enforced by the database in the ``UPDATE`` itself.
    """

    def __init__(self, db: AsyncSession):
        """Initialize service with a database session."""
        self.db = db

    async def create(self, document: UserDocument) -> str:
        """
        Create a new document.

        Returns:
            The ID of the new document
        """
        document_id = document.id or uuid4().hex
        etag = new_etag()
        now = datetime.now(UTC)

        if document.created_at is None:
            document.created_at = now
        document.timestamp = now

        try:
            await self.db.execute(
                insert(users).values(
                    id=document_id,
                    etag=etag,
                    document=document.to_document(),
                    created_at=now,
                    updated_at=now,
                )
            )
            await self._write_logins(document_id, document)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("A user with one of these logins already exists.")

        document.id = document_id
        document.etag = etag

        logger.debug("document_created", document_id=document_id)
        return document_id

    async def get(self, document_id: str) -> UserDocument | None:
        """Get the document with the given ID, or None if not found."""
        result = await self.db.execute(select(users).where(users.c.id == document_id))
        row = result.mappings().first()
        return self._to_user(row) if row else None

    async def get_where(self, field: str, value: str | None) -> list[UserDocument]:
        """
        Get all documents whose top-level ``field`` equals ``value``.

        Comparison is exact and case-sensitive.
        """
        if field not in QUERYABLE_FIELDS:
            raise ValueError(f"Documents cannot be queried by '{field}'.")

        query = (
            select(users)
            .where(document_field(field) == value)
            .order_by(users.c.created_at, users.c.id)
        )

        result = await self.db.execute(query)
        return [self._to_user(row) for row in result.mappings().all()]

    async def get_by_login(self, login_provider: str, provider_key: str) -> UserDocument | None:
        """Get the document that holds an external login, if any."""
        query = (
            select(users)
            .join(user_logins, user_logins.c.user_id == users.c.id)
            .where(
                user_logins.c.login_provider == login_provider,
                user_logins.c.provider_key == provider_key,
            )
        )

        result = await self.db.execute(query)
        row = result.mappings().first()
        return self._to_user(row) if row else None

    async def count(self) -> int:
        """Get the number of documents in the collection."""
        result = await self.db.execute(select(func.count()).select_from(users))
        return result.scalar_one()

    async def replace(self, document: UserDocument, etag: str | None) -> UserDocument | None:
        """
        Replace a stored document.

        Args:
            document: The replacement document
            etag: The ETag of the revision being replaced. ``None`` replaces
                whatever revision is current.

        Returns:
            The updated document carrying its new ETag, or None if the stored
            ETag did not match (or the document no longer exists)
        """
        new_tag = new_etag()
        now = datetime.now(UTC)

        body = document.model_copy(update={"timestamp": now})

        conditions = [users.c.id == document.id]
        if etag is not None:
            conditions.append(users.c.etag == etag)

        try:
            result = await self.db.execute(
                update(users)
                .where(*conditions)
                .values(etag=new_tag, document=body.to_document(), updated_at=now)
            )

            if result.rowcount != 1:  # type: ignore[attr-defined]
                await self.db.rollback()
                logger.info("document_replace_conflict", document_id=document.id, etag=etag)
                return None

            await self.db.execute(delete(user_logins).where(user_logins.c.user_id == document.id))
            await self._write_logins(document.id, body)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("A user with one of these logins already exists.")

        body.etag = new_tag
        return body

    async def delete(self, document_id: str) -> bool:
        """
        Delete the document with the given ID.

        Returns:
            True if the document was deleted, False if not found
        """
        await self.db.execute(delete(user_logins).where(user_logins.c.user_id == document_id))
        result = await self.db.execute(delete(users).where(users.c.id == document_id))
        await self.db.commit()

        return result.rowcount > 0  # type: ignore[attr-defined]

    async def _write_logins(self, document_id: str, document: UserDocument) -> None:
        if not document.logins:
            return

        await self.db.execute(
            insert(user_logins),
            [
                {
                    "user_id": document_id,
                    "login_provider": login.login_provider,
                    "provider_key": login.provider_key,
                }
                for login in document.logins
            ],
        )

    @staticmethod
    def _to_user(row) -> UserDocument:
        return UserDocument.from_document(row["id"], row["etag"], row["document"])
