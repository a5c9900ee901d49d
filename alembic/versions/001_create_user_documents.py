"""Create user document tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the users collection and its login index."""
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("etag", sa.Text(), nullable=False),
        sa.Column("document", postgresql.JSONB(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )

    # Lookups by Alexa token and normalized email query inside the document
    op.execute("CREATE INDEX ix_users_alexa_token ON users ((document ->> 'alexaToken'))")
    op.execute("CREATE INDEX ix_users_email_normalized ON users ((document ->> 'emailNormalized'))")

    op.create_table(
        "user_logins",
        sa.Column(
            "user_id",
            sa.Text(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("login_provider", sa.Text(), nullable=False),
        sa.Column("provider_key", sa.Text(), nullable=False),
        sa.UniqueConstraint("login_provider", "provider_key", name="uq_user_logins_provider_key"),
    )

    op.create_index("ix_user_logins_user_id", "user_logins", ["user_id"], unique=False)


def downgrade() -> None:
    """Drop the users collection."""
    op.drop_index("ix_user_logins_user_id", table_name="user_logins")
    op.drop_table("user_logins")
    op.execute("DROP INDEX IF EXISTS ix_users_email_normalized")
    op.execute("DROP INDEX IF EXISTS ix_users_alexa_token")
    op.drop_table("users")
