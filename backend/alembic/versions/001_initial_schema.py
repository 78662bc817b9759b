"""Initial schema: farms, animals, caretakers, farm_animals join table.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

farm_animals uses a composite primary key so a duplicate link surfaces as a
unique violation at save time.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "farms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "animals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("species", sa.String(100), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "caretakers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("role", sa.String(100), nullable=True),
        sa.Column(
            "farm_id", sa.Integer(),
            sa.ForeignKey("farms.id", ondelete="SET NULL"), nullable=True,
        ),
    )
    op.create_table(
        "farm_animals",
        sa.Column(
            "farm_id", sa.Integer(),
            sa.ForeignKey("farms.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "animal_id", sa.Integer(),
            sa.ForeignKey("animals.id", ondelete="CASCADE"), primary_key=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("farm_animals")
    op.drop_table("caretakers")
    op.drop_table("animals")
    op.drop_table("farms")
