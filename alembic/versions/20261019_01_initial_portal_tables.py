"""create employees, users and image_requests

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return table_name in set(inspector.get_table_names())


def upgrade() -> None:
    if not _table_exists("employees"):
        op.create_table(
            "employees",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("employee_id", sa.String(length=64), nullable=False),
            sa.Column("display_name", sa.String(length=256), nullable=False),
            sa.Column("mini_region_name", sa.String(length=256), nullable=False),
            sa.Column("region_name", sa.String(length=256), nullable=False),
            sa.Column("sub_zone_name", sa.String(length=256), nullable=False),
            sa.Column("zone_name", sa.String(length=256), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_employees_employee_id", "employees", ["employee_id"], unique=True)

    if not _table_exists("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("employee_id", sa.String(length=64), nullable=False),
            sa.Column("display_name", sa.String(length=256), nullable=False),
            sa.Column("role", sa.String(length=16), nullable=False, server_default="user"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_id", "users", ["id"])
        op.create_index("ix_users_employee_id", "users", ["employee_id"], unique=True)

    if not _table_exists("image_requests"):
        op.create_table(
            "image_requests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("employee_id", sa.String(length=64), nullable=False),
            sa.Column("display_name", sa.String(length=256), nullable=False),
            sa.Column("original_file_name", sa.String(length=512), nullable=False),
            sa.Column("original_content_type", sa.String(length=128), nullable=True),
            sa.Column("original_file_path", sa.Text(), nullable=True),
            sa.Column("original_file_content", sa.LargeBinary(), nullable=True),
            sa.Column("edited_file_name", sa.String(length=512), nullable=True),
            sa.Column("edited_content_type", sa.String(length=128), nullable=True),
            sa.Column("edited_file_path", sa.Text(), nullable=True),
            sa.Column("edited_file_content", sa.LargeBinary(), nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_image_requests_user_id", "image_requests", ["user_id"])
        op.create_index("ix_image_requests_employee_id", "image_requests", ["employee_id"])
        op.create_index("ix_image_requests_status", "image_requests", ["status"])
        op.create_index("ix_image_requests_uploaded_at", "image_requests", ["uploaded_at"])


def downgrade() -> None:
    for table, indexes in (
        (
            "image_requests",
            (
                "ix_image_requests_uploaded_at",
                "ix_image_requests_status",
                "ix_image_requests_employee_id",
                "ix_image_requests_user_id",
            ),
        ),
        ("users", ("ix_users_employee_id", "ix_users_id")),
        ("employees", ("ix_employees_employee_id",)),
    ):
        if _table_exists(table):
            for index in indexes:
                op.drop_index(index, table_name=table)
            op.drop_table(table)
