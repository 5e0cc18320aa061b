"""Create users, places and user_places tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates the three tables behind users, places and each user's
       ordered places collection.
How:   Uses PostgreSQL UUID columns and TIMESTAMP WITH TIME ZONE.
       No foreign keys: the two directions of the user ↔ place link are kept
       in step by the place workflow (see app/models/user.py).

Rollback: downgrade() drops all three tables (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False, comment="Unique identifier"),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column(
            "email",
            sa.String(255),
            nullable=False,
            comment="Contact address, stored lower-cased",
        ),
        sa.Column("image", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "places",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("address", sa.String(500), nullable=False),

        # Produced by geocoding the address, never sent by clients
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),

        sa.Column(
            "image",
            sa.String(255),
            nullable=False,
            comment="Relative path from storage root to the uploaded image",
        ),
        sa.Column("creator_id", postgresql.UUID(as_uuid=True), nullable=False),
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
    # GET /api/places/user/{uid} and reconciliation look places up by creator
    op.create_index("idx_places_creator_id", "places", ["creator_id"])

    op.create_table(
        "user_places",
        # Insertion order of the collection
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("place_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.PrimaryKeyConstraint("seq"),
        sa.UniqueConstraint("user_id", "place_id", name="uq_user_places_user_place"),
    )
    op.create_index("idx_user_places_place_id", "user_places", ["place_id"])


def downgrade() -> None:
    """WARNING: destructive. All users, places and references are lost."""
    op.drop_index("idx_user_places_place_id", table_name="user_places")
    op.drop_table("user_places")
    op.drop_index("idx_places_creator_id", table_name="places")
    op.drop_table("places")
    op.drop_table("users")
