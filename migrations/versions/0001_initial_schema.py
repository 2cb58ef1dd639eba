"""Initial schema for the bursar ledgers.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-09-02 19:58:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    fee_type_enum = sa.Enum(
        "NEW_YEAR",
        "SUPPLEMENTARY",
        "TRAINING",
        "STUDENT_SERVICES",
        "EXAM",
        "OTHER",
        name="fee_type_enum",
    )
    payment_method_enum = sa.Enum("CASH", "TRANSFER", "CHEQUE", name="payment_method_enum")

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.String(length=50), nullable=False),
        sa.Column("student_name", sa.String(length=100), nullable=False),
        sa.Column("fee_type", fee_type_enum, nullable=False),
        sa.Column("amount", sa.DECIMAL(precision=15, scale=2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="EGP"),
        sa.Column("amount_usd", sa.DECIMAL(precision=15, scale=2), nullable=True),
        sa.Column("usd_applied_rate", sa.DECIMAL(precision=10, scale=6), nullable=True),
        sa.Column("receipt_number", sa.String(length=100), nullable=False),
        sa.Column("payment_method", payment_method_enum, nullable=False),
        sa.Column("payment_date", sa.DateTime(timezone=False), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("receipt_number"),
    )
    op.create_index("idx_payments_payment_date", "payments", ["payment_date"])
    op.create_index("idx_payments_student_id", "payments", ["student_id"])
    op.create_index("ix_payments_created_by_id", "payments", ["created_by_id"])

    op.create_table(
        "expenses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.DECIMAL(precision=15, scale=2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("vendor", sa.String(length=255), nullable=True),
        sa.Column("receipt_url", sa.String(length=500), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount_usd", sa.DECIMAL(precision=15, scale=2), nullable=True),
        sa.Column("usd_applied_rate", sa.DECIMAL(precision=10, scale=6), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_expenses_date", "expenses", ["date"])
    op.create_index("idx_expenses_category", "expenses", ["category"])
    op.create_index("ix_expenses_created_by_id", "expenses", ["created_by_id"])

    op.create_table(
        "currency_rates",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("rate", sa.DECIMAL(precision=10, scale=6), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_currency_rates_currency_active", "currency_rates", ["currency", "is_active"])


def downgrade() -> None:
    op.drop_index("idx_currency_rates_currency_active", table_name="currency_rates")
    op.drop_table("currency_rates")

    op.drop_index("ix_expenses_created_by_id", table_name="expenses")
    op.drop_index("idx_expenses_category", table_name="expenses")
    op.drop_index("idx_expenses_date", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("ix_payments_created_by_id", table_name="payments")
    op.drop_index("idx_payments_student_id", table_name="payments")
    op.drop_index("idx_payments_payment_date", table_name="payments")
    op.drop_table("payments")

    op.drop_table("users")

    sa.Enum(name="payment_method_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="fee_type_enum").drop(op.get_bind(), checkfirst=True)
