"""Initial depot schema: outlets, catalog, tiers, inventory, sales, capital

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def upgrade():
    op.create_table(
        "outlets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_outlets_code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("outlet_id", "document_type", name="uq_doc_sequences_outlet_type"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("document_sequences", schema=None) as batch_op:
        batch_op.create_index("ix_document_sequences_outlet_id", ["outlet_id"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("is_global", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("outlet_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("outlet_id", "name", name="uq_products_outlet_name"),
        sa.CheckConstraint(
            "(is_global AND outlet_id IS NULL) OR (NOT is_global AND outlet_id IS NOT NULL)",
            name="ck_products_ownership",
        ),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_category", ["category"], unique=False)
        batch_op.create_index("ix_products_outlet_id", ["outlet_id"], unique=False)

    op.create_table(
        "price_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("base_price", sa.Integer(), nullable=False),
        sa.Column("cost_price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("outlet_id", "product_id", name="uq_price_rules_outlet_product"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("price_rules", schema=None) as batch_op:
        batch_op.create_index("ix_price_rules_outlet_id", ["outlet_id"], unique=False)
        batch_op.create_index("ix_price_rules_product_id", ["product_id"], unique=False)

    op.create_table(
        "customer_tiers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("display_name", sa.String(128), nullable=False),
        sa.Column("global_discount_percent", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("color", sa.String(16), nullable=True),
        sa.Column("min_spent", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_customer_tiers_name"),
        sa.CheckConstraint(
            "global_discount_percent >= 0 AND global_discount_percent <= 100",
            name="ck_customer_tiers_percent",
        ),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("tier_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.ForeignKeyConstraint(["tier_id"], ["customer_tiers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_outlet_id", ["outlet_id"], unique=False)
        batch_op.create_index("ix_customers_outlet_tier", ["outlet_id", "tier_id"], unique=False)

    op.create_table(
        "tier_price_overrides",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("tier_id", sa.Integer(), nullable=False),
        sa.Column("discount_kind", sa.String(16), nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["tier_id"], ["customer_tiers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("outlet_id", "product_id", "tier_id", name="uq_tier_overrides_outlet_product_tier"),
        sa.CheckConstraint("discount_value >= 0", name="ck_tier_overrides_value"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("tier_price_overrides", schema=None) as batch_op:
        batch_op.create_index("ix_tier_price_overrides_outlet_id", ["outlet_id"], unique=False)

    op.create_table(
        "inventory_states",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("stock_filled", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("stock_empty", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("outlet_id", "product_id", name="uq_inventory_states_outlet_product"),
        sa.CheckConstraint("stock_filled >= 0", name="ck_inventory_states_filled"),
        sa.CheckConstraint("stock_empty >= 0", name="ck_inventory_states_empty"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_states", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_states_outlet_id", ["outlet_id"], unique=False)
        batch_op.create_index("ix_inventory_states_product_id", ["product_id"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(32), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("total_cost", sa.Integer(), nullable=False),
        sa.Column("total_profit", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("cash_tendered", sa.Integer(), nullable=True),
        sa.Column("change_amount", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="paid"),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("outlet_id", "invoice_number", name="uq_sales_outlet_invoice"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.create_index("ix_sales_outlet_id", ["outlet_id"], unique=False)
        batch_op.create_index("ix_sales_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_sales_status", ["status"], unique=False)
        batch_op.create_index("ix_sales_outlet_status_created", ["outlet_id", "status", "created_at"], unique=False)

    op.create_table(
        "sale_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("base_price", sa.Integer(), nullable=False),
        sa.Column("discount_amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_source", sa.String(16), nullable=False, server_default="none"),
        sa.Column("unit_price", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Integer(), nullable=False),
        sa.Column("subtotal", sa.Integer(), nullable=False),
        sa.Column("profit", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sale_lines", schema=None) as batch_op:
        batch_op.create_index("ix_sale_lines_sale_id", ["sale_id"], unique=False)

    op.create_table(
        "inventory_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("delta_filled", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("delta_empty", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reason", sa.String(32), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=True),
        sa.Column("note", sa.String(255), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_events", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_events_outlet_id", ["outlet_id"], unique=False)
        batch_op.create_index("ix_inventory_events_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_inventory_events_reason", ["reason"], unique=False)
        batch_op.create_index("ix_inventory_events_sale_id", ["sale_id"], unique=False)
        batch_op.create_index(
            "ix_inventory_events_outlet_product_created",
            ["outlet_id", "product_id", "created_at"],
            unique=False,
        )

    op.create_table(
        "capital_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outlet_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(8), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("note", sa.String(255), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["outlet_id"], ["outlets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount > 0", name="ck_capital_entries_amount"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("capital_entries", schema=None) as batch_op:
        batch_op.create_index("ix_capital_entries_outlet_id", ["outlet_id"], unique=False)
        batch_op.create_index("ix_capital_entries_outlet_created", ["outlet_id", "created_at"], unique=False)


def downgrade():
    op.drop_table("capital_entries")
    op.drop_table("inventory_events")
    op.drop_table("sale_lines")
    op.drop_table("sales")
    op.drop_table("inventory_states")
    op.drop_table("tier_price_overrides")
    op.drop_table("customers")
    op.drop_table("customer_tiers")
    op.drop_table("price_rules")
    op.drop_table("products")
    op.drop_table("document_sequences")
    op.drop_table("outlets")
