"""initial schema: users, contracts, content catalog, royalties, audit logs

Revision ID: 4f1d2c9a7e31
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "4f1d2c9a7e31"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default="Sales"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("invite_token", sa.String(255), nullable=True),
        sa.Column("invite_token_expiry", sa.DateTime(), nullable=True),
        sa.Column("invite_status", sa.String(20), nullable=True),
        sa.Column("reset_token", sa.String(255), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_users_email", "users", ["email"])
    op.create_index("idx_users_role", "users", ["role"])
    op.create_index("idx_users_invite_token", "users", ["invite_token"])
    op.create_index("idx_users_reset_token", "users", ["reset_token"])

    op.create_table(
        "contracts",
        _uuid_pk(),
        sa.Column("partner", sa.String(255), nullable=False),
        sa.Column("licensor", sa.String(255), nullable=False),
        sa.Column("licensee", sa.String(255), nullable=False),
        sa.Column("territory", sa.String(255), nullable=False),
        sa.Column("platform", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("auto_renew", sa.Boolean(), server_default="false"),
        sa.Column("royalty_type", sa.String(20), server_default="Revenue Share"),
        sa.Column("royalty_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("flat_fee_amount", sa.Numeric(15, 2), nullable=True),
        sa.Column("minimum_payment", sa.Numeric(15, 2), nullable=True),
        sa.Column("payment_terms", sa.String(20), server_default="Net 30"),
        sa.Column("reporting_frequency", sa.String(20), server_default="None"),
        sa.Column("exclusivity", sa.String(30), server_default="Non-Exclusive"),
        sa.Column("status", sa.String(20), server_default="Active"),
        sa.Column("parent_contract_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("contract_document_url", sa.String(500), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["parent_contract_id"], ["contracts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.CheckConstraint(
            "status IN ('Active','Expired','In Perpetuity','Terminated')",
            name="chk_contract_status",
        ),
        sa.CheckConstraint(
            "exclusivity IN ('Exclusive','Non-Exclusive','Limited Exclusive')",
            name="chk_contract_exclusivity",
        ),
    )
    op.create_index("idx_contracts_partner", "contracts", ["partner"])
    op.create_index("idx_contracts_status", "contracts", ["status"])
    op.create_index("idx_contracts_start_date", "contracts", ["start_date"])
    op.create_index("idx_contracts_end_date", "contracts", ["end_date"])
    op.create_index("idx_contracts_parent", "contracts", ["parent_contract_id"])

    op.create_table(
        "content_items",
        _uuid_pk(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("season", sa.Integer(), nullable=True),
        sa.Column("episode_count", sa.Integer(), nullable=True),
        sa.Column("release_year", sa.Integer(), nullable=True),
        sa.Column("genre", sa.String(100), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.CheckConstraint(
            "type IN ('Film','TV Series','TBN FAST','TBN Linear','WoF FAST')",
            name="chk_content_type",
        ),
    )
    op.create_index("idx_content_items_type", "content_items", ["type"])
    op.create_index("idx_content_items_title", "content_items", ["title"])

    op.create_table(
        "contract_content",
        _uuid_pk(),
        sa.Column("contract_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["content_id"], ["content_items.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("contract_id", "content_id", name="uq_contract_content"),
    )
    op.create_index("idx_contract_content_contract", "contract_content", ["contract_id"])
    op.create_index("idx_contract_content_content", "contract_content", ["content_id"])

    op.create_table(
        "royalties",
        _uuid_pk(),
        sa.Column("contract_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reporting_period", sa.String(50), nullable=False),
        sa.Column("revenue", sa.Numeric(15, 2), nullable=False),
        sa.Column("royalty_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("status", sa.String(20), server_default="Pending"),
        sa.Column("calculated_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("calculated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["calculated_by"], ["users.id"]),
        sa.CheckConstraint(
            "status IN ('Pending','Approved','Paid')", name="chk_royalty_status"
        ),
    )
    op.create_index("idx_royalties_contract", "royalties", ["contract_id"])
    op.create_index("idx_royalties_status", "royalties", ["status"])

    op.create_table(
        "audit_logs",
        _uuid_pk(),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("old_values", postgresql.JSONB(), nullable=True),
        sa.Column("new_values", postgresql.JSONB(), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
    op.create_index("idx_audit_user", "audit_logs", ["user_id"])
    op.create_index("idx_audit_created", "audit_logs", [sa.text("created_at DESC")])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("royalties")
    op.drop_table("contract_content")
    op.drop_table("content_items")
    op.drop_table("contracts")
    op.drop_table("users")
