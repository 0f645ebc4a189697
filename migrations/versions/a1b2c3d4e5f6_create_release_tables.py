"""create release tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "crates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_crates_name", "crates", ["name"])

    op.create_table(
        "releases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("crate_id", sa.Integer(), sa.ForeignKey("crates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("version", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("yanked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("downloads", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("release_time", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("crate_id", "version", name="uq_releases_crate_version"),
    )
    op.create_index("ix_releases_crate_id", "releases", ["crate_id"])

    op.create_table(
        "builds",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("release_id", sa.Integer(), sa.ForeignKey("releases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("log", sa.Text(), nullable=True),
        sa.Column("build_time", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_builds_release_id", "builds", ["release_id"])

    op.create_table(
        "owners",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("login", sa.Text(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("avatar", sa.Text(), nullable=True),
    )
    op.create_index("ix_owners_login", "owners", ["login"])

    op.create_table(
        "crate_owners",
        sa.Column("crate_id", sa.Integer(), sa.ForeignKey("crates.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("owners.id", ondelete="CASCADE"), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("crate_owners")
    op.drop_index("ix_owners_login", table_name="owners")
    op.drop_table("owners")
    op.drop_index("ix_builds_release_id", table_name="builds")
    op.drop_table("builds")
    op.drop_index("ix_releases_crate_id", table_name="releases")
    op.drop_table("releases")
    op.drop_index("ix_crates_name", table_name="crates")
    op.drop_table("crates")
