"""Create users and notes tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Initial schema: ``users`` accounts and their ``notes``.
How:   UUID primary keys, TIMESTAMP WITH TIME ZONE, notes.owner_id
       referencing users.id with ON DELETE CASCADE.

Indexes:
    ix_users_email            unique, emails are stored lower-cased
    idx_notes_owner_created   (owner_id, created_at): every listing
    idx_notes_search          GIN over the english tsvector of
                              title, content and summary

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Same expression as voicenotes.models.note.search_vector();
# otherwise the planner will not use the index.
SEARCH_VECTOR_SQL = (
    "to_tsvector('english', coalesce(title, '') || ' ' || "
    "coalesce(content, '') || ' ' || coalesce(summary, ''))"
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(50), nullable=False, comment="Display name"),
        sa.Column("email", sa.String(255), nullable=False, comment="Login email, lower-cased"),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="passlib hash"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "notes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False, comment="Opaque note identifier"),
        sa.Column(
            "owner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            comment="Owning user; never changes after creation",
        ),
        sa.Column("title", sa.String(200), nullable=False, comment="Note title"),
        sa.Column("content", sa.Text(), nullable=False, comment="Transcript or typed note body"),
        sa.Column("summary", sa.Text(), nullable=True, comment="AI-generated summary; NULL until generated"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was created (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was last modified (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_notes_owner_created", "notes", ["owner_id", "created_at"])
    op.execute(f"CREATE INDEX idx_notes_search ON notes USING gin ({SEARCH_VECTOR_SQL})")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_notes_search")
    op.drop_index("idx_notes_owner_created", table_name="notes")
    op.drop_table("notes")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
