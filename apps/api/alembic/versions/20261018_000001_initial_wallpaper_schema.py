"""initial wallpaper schema

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "global_wallpapers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("mode", sa.String(), nullable=False, server_default="website"),
        sa.Column("website_url", sa.String(), nullable=False),
        sa.Column("daily_url", sa.String(), nullable=False, server_default=""),
        sa.Column("random_urls", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("shuffled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "wallpaper_history",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("used_date", sa.Date(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("copyright", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_wallpaper_history_used_date",
        "wallpaper_history",
        ["used_date"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("ix_wallpaper_history_used_date", table_name="wallpaper_history")
    op.drop_table("wallpaper_history")
    op.drop_table("global_wallpapers")
