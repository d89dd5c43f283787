"""create idea sessions and session modules

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-18 09:12:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "7c1e2a9d4b10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "idea_sessions",
    sa.Column("session_id", sa.String(), nullable=False),
    sa.Column("owner_id", sa.String(), nullable=False),
    sa.Column("idea_text", sa.Text(), nullable=False),
    sa.Column("domain_hint", sa.String(), nullable=False),
    sa.Column("tone_preference", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("run_active", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("cancelled", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("last_run_ended_at", sa.String(), nullable=True),
    sa.Column("completed_at", sa.String(), nullable=True),
    sa.Column("created_at", sa.String(), nullable=False),
    sa.Column("updated_at", sa.String(), nullable=False),
    sa.PrimaryKeyConstraint("session_id"),
  )
  op.create_index("ix_idea_sessions_owner_id", "idea_sessions", ["owner_id"])
  op.create_index("ix_idea_sessions_status", "idea_sessions", ["status"])
  op.create_index("ix_idea_sessions_owner_created", "idea_sessions", ["owner_id", "created_at"])

  op.create_table(
    "session_modules",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("session_id", sa.String(), nullable=False),
    sa.Column("module_id", sa.String(), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False),
    sa.Column("state", sa.String(), nullable=False),
    sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("error", sa.Text(), nullable=True),
    sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("updated_at", sa.String(), nullable=True),
    sa.ForeignKeyConstraint(["session_id"], ["idea_sessions.session_id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("session_id", "module_id", name="ux_session_modules_session_module"),
  )
  op.create_index("ix_session_modules_session_id", "session_modules", ["session_id"])
  op.create_index("ix_session_modules_state", "session_modules", ["state"])


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_session_modules_state", table_name="session_modules")
  op.drop_index("ix_session_modules_session_id", table_name="session_modules")
  op.drop_table("session_modules")
  op.drop_index("ix_idea_sessions_owner_created", table_name="idea_sessions")
  op.drop_index("ix_idea_sessions_status", table_name="idea_sessions")
  op.drop_index("ix_idea_sessions_owner_id", table_name="idea_sessions")
  op.drop_table("idea_sessions")
