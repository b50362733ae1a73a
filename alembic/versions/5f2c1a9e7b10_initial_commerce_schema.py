"""initial commerce schema

Revision ID: 5f2c1a9e7b10
Revises:
Create Date: 2026-10-19 09:12:44.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5f2c1a9e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    "user_role_enum": ("customer", "retailer", "wholesaler"),
    "order_type_enum": ("retail", "wholesale"),
    "order_status_enum": ("pending", "processed", "shipped", "delivered", "cancelled"),
    "order_item_status_enum": (
        "pending", "processed", "shipped", "delivered", "cancelled", "to_return", "returned"
    ),
    "payment_method_enum": ("credit_card", "upi", "cash_on_delivery"),
    "payment_status_enum": ("pending", "completed", "failed"),
}


def _enum(name):
    # types are created once up front; payment enums are shared by two tables
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade():
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("phone", sa.String(50), unique=True),
        sa.Column("first_name", sa.String(120)),
        sa.Column("last_name", sa.String(120)),
        sa.Column("role", _enum("user_role_enum"), nullable=False),
        sa.Column("is_active", sa.Boolean()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("street_address", sa.String(255), nullable=False),
        sa.Column("city", sa.String(120), nullable=False),
        sa.Column("state", sa.String(120), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=False),
        sa.Column("country", sa.String(120), nullable=False),
        sa.Column("is_primary", sa.Boolean()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="SET NULL")),
        sa.Column("image_urls", sa.JSON()),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "shops",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("address_id", sa.Integer(), sa.ForeignKey("addresses.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("name", sa.String(255)),
        sa.Column("address_id", sa.Integer(), sa.ForeignKey("addresses.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "warehouse_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("stock_quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("warehouse_id", "product_id", name="uq_warehouse_inventory_product"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_warehouse_inventory_stock_non_negative"),
        sa.CheckConstraint("price > 0", name="ck_warehouse_inventory_price_positive"),
    )

    op.create_table(
        "shop_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("stock_quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_proxy_item", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("warehouse_inventory_id", sa.Integer(), sa.ForeignKey("warehouse_inventory.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("shop_id", "product_id", name="uq_shop_inventory_product"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_shop_inventory_stock_non_negative"),
        sa.CheckConstraint("price > 0", name="ck_shop_inventory_price_positive"),
    )

    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cart_id", sa.Integer(), sa.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shop_inventory_id", sa.Integer(), sa.ForeignKey("shop_inventory.id"), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False),
        sa.UniqueConstraint("cart_id", "shop_inventory_id", name="uq_cart_item_listing"),
        sa.CheckConstraint("quantity > 0", name="ck_cart_item_quantity_positive"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("order_type", _enum("order_type_enum"), nullable=False),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id")),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id")),
        sa.Column("status", _enum("order_status_enum"), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", _enum("payment_method_enum"), nullable=False),
        sa.Column("payment_status", _enum("payment_status_enum"), nullable=False),
        sa.Column("delivery_address_id", sa.Integer(), sa.ForeignKey("addresses.id", ondelete="RESTRICT")),
        sa.Column("is_proxy_order", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("offline_order_delivery_date", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "(shop_id IS NOT NULL AND warehouse_id IS NULL) OR "
            "(shop_id IS NULL AND warehouse_id IS NOT NULL)",
            name="ck_order_shop_xor_warehouse",
        ),
        sa.CheckConstraint("total_amount >= 0", name="ck_order_total_non_negative"),
    )
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_shop_id", "orders", ["shop_id"])
    op.create_index("ix_orders_warehouse_id", "orders", ["warehouse_id"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("shop_inventory_id", sa.Integer(), sa.ForeignKey("shop_inventory.id")),
        sa.Column("warehouse_inventory_id", sa.Integer(), sa.ForeignKey("warehouse_inventory.id")),
        sa.Column("source_warehouse_inventory_id", sa.Integer(), sa.ForeignKey("warehouse_inventory.id")),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("price_at_purchase", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", _enum("order_item_status_enum"), nullable=False),
        sa.CheckConstraint(
            "(shop_inventory_id IS NOT NULL AND warehouse_inventory_id IS NULL) OR "
            "(shop_inventory_id IS NULL AND warehouse_inventory_id IS NOT NULL)",
            name="ck_order_item_listing_xor",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False, unique=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", _enum("payment_method_enum"), nullable=False),
        sa.Column("status", _enum("payment_status_enum"), nullable=False),
        sa.Column("transaction_id", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("payments")
    op.drop_index("ix_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("ix_orders_warehouse_id", table_name="orders")
    op.drop_index("ix_orders_shop_id", table_name="orders")
    op.drop_index("ix_orders_customer_id", table_name="orders")
    op.drop_table("orders")
    op.drop_table("cart_items")
    op.drop_table("carts")
    op.drop_table("shop_inventory")
    op.drop_table("warehouse_inventory")
    op.drop_table("warehouses")
    op.drop_table("shops")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_table("addresses")
    op.drop_table("users")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
