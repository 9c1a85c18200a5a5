"""Create donors, inventory_batches and blood_requests tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum columns store member names, matching SQLModel's default mapping.
blood_type_enum = sa.Enum(
    "A_POS", "A_NEG", "B_POS", "B_NEG", "AB_POS", "AB_NEG", "O_POS", "O_NEG",
    name="bloodtype",
)
batch_status_enum = sa.Enum("AVAILABLE", "RESERVED", "USED", "EXPIRED", name="batchstatus")
request_priority_enum = sa.Enum("LOW", "MEDIUM", "HIGH", "CRITICAL", name="requestpriority")
request_status_enum = sa.Enum(
    "PENDING", "FULFILLED", "REJECTED", "CANCELLED", name="requeststatus"
)


def upgrade() -> None:
    """Create initial tables."""
    op.create_table(
        "donors",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("blood_type", blood_type_enum, nullable=False),
        sa.Column("phone", sa.String(length=15), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("address", sa.String(length=200), nullable=False),
        sa.Column("last_donation_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_donors_email", "donors", ["email"])
    op.create_index("ix_donors_blood_type", "donors", ["blood_type"])
    op.create_index("ix_donors_deleted_at", "donors", ["deleted_at"])

    op.create_table(
        "inventory_batches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("blood_type", blood_type_enum, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("collected_at", sa.DateTime(), nullable=False),
        sa.Column("expiry_date", sa.DateTime(), nullable=False),
        sa.Column("status", batch_status_enum, nullable=False),
        sa.Column("donor_id", sa.Integer(), nullable=True),
        sa.Column("split_from_id", sa.Integer(), nullable=True),
        sa.Column("allocated_request_id", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["donor_id"], ["donors.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventory_batches_blood_type", "inventory_batches", ["blood_type"])
    op.create_index("ix_inventory_batches_expiry_date", "inventory_batches", ["expiry_date"])
    op.create_index("ix_inventory_batches_status", "inventory_batches", ["status"])
    op.create_index("ix_inventory_batches_donor_id", "inventory_batches", ["donor_id"])
    op.create_index("ix_inventory_batches_split_from_id", "inventory_batches", ["split_from_id"])
    op.create_index(
        "ix_inventory_batches_allocated_request_id",
        "inventory_batches",
        ["allocated_request_id"],
    )

    op.create_table(
        "blood_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("patient_name", sa.String(length=100), nullable=False),
        sa.Column("hospital", sa.String(length=100), nullable=False),
        sa.Column("blood_type", blood_type_enum, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("priority", request_priority_enum, nullable=False),
        sa.Column("status", request_status_enum, nullable=False),
        sa.Column("requested_at", sa.DateTime(), nullable=False),
        sa.Column("processed_by", sa.String(length=100), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_blood_requests_blood_type", "blood_requests", ["blood_type"])
    op.create_index("ix_blood_requests_status", "blood_requests", ["status"])
    op.create_index("ix_blood_requests_requested_at", "blood_requests", ["requested_at"])


def downgrade() -> None:
    """Drop initial tables."""
    op.drop_index("ix_blood_requests_requested_at", table_name="blood_requests")
    op.drop_index("ix_blood_requests_status", table_name="blood_requests")
    op.drop_index("ix_blood_requests_blood_type", table_name="blood_requests")
    op.drop_table("blood_requests")

    op.drop_index("ix_inventory_batches_allocated_request_id", table_name="inventory_batches")
    op.drop_index("ix_inventory_batches_split_from_id", table_name="inventory_batches")
    op.drop_index("ix_inventory_batches_donor_id", table_name="inventory_batches")
    op.drop_index("ix_inventory_batches_status", table_name="inventory_batches")
    op.drop_index("ix_inventory_batches_expiry_date", table_name="inventory_batches")
    op.drop_index("ix_inventory_batches_blood_type", table_name="inventory_batches")
    op.drop_table("inventory_batches")

    op.drop_index("ix_donors_deleted_at", table_name="donors")
    op.drop_index("ix_donors_blood_type", table_name="donors")
    op.drop_index("ix_donors_email", table_name="donors")
    op.drop_table("donors")

    for enum in (request_status_enum, request_priority_enum, batch_status_enum, blood_type_enum):
        enum.drop(op.get_bind(), checkfirst=True)
