"""Initial schema baseline

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates the sources, articles, keywords, user_preferences and
benchmark_entries tables. Databases created through init_db() already have
this schema; mark them as migrated without running it:
    alembic stamp 001
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # sources table
    op.create_table(
        "sources",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("source_type", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("feed_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, default=True),
        sa.Column("ranking", sa.Float(), nullable=False, default=0.5),
        sa.Column("added_at", sa.Integer(), nullable=False),
        sa.Column("last_fetched_at", sa.Integer(), nullable=True),
        sa.Column("fetch_interval_minutes", sa.Integer(), nullable=False, default=60),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("url"),
    )

    # articles table
    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("llm_summary", sa.Text(), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("author", sa.Text(), nullable=True),
        sa.Column("published_at", sa.Integer(), nullable=True),
        sa.Column("fetched_at", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("is_bookmarked", sa.Boolean(), nullable=False, default=False),
        sa.Column("read_at", sa.Integer(), nullable=True),
        sa.Column("keywords", sa.Text(), nullable=False),
        sa.Column("categories", sa.Text(), nullable=False),
        sa.Column("sentiment", sa.Float(), nullable=True),
        sa.Column("relevance_score", sa.Float(), nullable=False, default=0.5),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("url"),
        sa.ForeignKeyConstraint(["source_id"], ["sources.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_articles_published_at", "articles", ["published_at"])
    op.create_index("idx_articles_relevance_score", "articles", ["relevance_score"])
    op.create_index("idx_articles_source_id", "articles", ["source_id"])

    # keywords table
    op.create_table(
        "keywords",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, default=0),
        sa.Column("positive_count", sa.Integer(), nullable=False, default=0),
        sa.Column("negative_count", sa.Integer(), nullable=False, default=0),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # user_preferences table
    op.create_table(
        "user_preferences",
        sa.Column("keyword", sa.Text(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False, default=0.0),
        sa.Column("confidence", sa.Float(), nullable=False, default=0.0),
        sa.Column("last_updated", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("keyword"),
    )

    # benchmark_entries table
    op.create_table(
        "benchmark_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("benchmark_name", sa.Text(), nullable=False),
        sa.Column("model_name", sa.Text(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("recorded_at", sa.Integer(), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_benchmarks_name_model", "benchmark_entries", ["benchmark_name", "model_name"]
    )


def downgrade() -> None:
    op.drop_index("idx_benchmarks_name_model", table_name="benchmark_entries")
    op.drop_table("benchmark_entries")
    op.drop_table("user_preferences")
    op.drop_table("keywords")
    op.drop_index("idx_articles_source_id", table_name="articles")
    op.drop_index("idx_articles_relevance_score", table_name="articles")
    op.drop_index("idx_articles_published_at", table_name="articles")
    op.drop_table("articles")
    op.drop_table("sources")
