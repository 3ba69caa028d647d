"""Create deployments table

Revision ID: 001_create_deployments
Revises:
Create Date: 2026-10-19

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers
revision = "001_create_deployments"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "deployments",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False, index=True),
        sa.Column(
            "status",
            sa.Enum(
                "analyzing", "deploying", "deployed", "failed", name="deployment_status"
            ),
            nullable=False,
            server_default="analyzing",
            index=True,
        ),
        sa.Column("address", sa.String(64), nullable=True),
        sa.Column("tx_id", sa.String(80), nullable=True),
        sa.Column("record", sa.JSON, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_deployments_user_created", "deployments", ["user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_deployments_user_created", table_name="deployments")
    op.drop_table("deployments")
    sa.Enum(name="deployment_status").drop(op.get_bind(), checkfirst=True)
