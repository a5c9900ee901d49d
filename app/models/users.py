"""User document collection definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import FunctionElement

metadata = MetaData()

users = Table(
    "users",
    metadata,
    # Document identity, assigned at creation
    Column("id", Text, primary_key=True),
    # Revision token, replaced on every write
    Column("etag", Text, nullable=False),
    # The user document itself (camelCase JSON)
    Column("document", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")),
)

# Index of external logins so a login can be resolved to its user without
# scanning documents. Rows are rewritten in the same transaction as the document.
user_logins = Table(
    "user_logins",
    metadata,
    Column("user_id", Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("login_provider", Text, nullable=False),
    Column("provider_key", Text, nullable=False),
    UniqueConstraint("login_provider", "provider_key", name="uq_user_logins_provider_key"),
)


class document_field(FunctionElement):
    """
    Text value of a top-level field of the user document.

    Compiles to ``(document ->> 'field')`` on PostgreSQL, the same expression
    the migration indexes, so lookups by Alexa token and email use the index.
    ``field`` is rendered into the SQL and must come from a fixed set of names.
    """

    type = Text()
    name = "document_field"
    # The field name is not a clause, so compiled statements cannot be cached by clauses alone
    inherit_cache = False

    def __init__(self, field: str):
        self.field = field
        super().__init__(users.c.document)


@compiles(document_field)
def _compile_document_field(element, compiler, **kw):
    return "json_extract(%s, '$.\"%s\"')" % (compiler.process(element.clauses, **kw), element.field)


@compiles(document_field, "postgresql")
def _compile_document_field_postgresql(element, compiler, **kw):
    return "(%s ->> '%s')" % (compiler.process(element.clauses, **kw), element.field)
