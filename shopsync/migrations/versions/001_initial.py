"""Initial shopsync schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _shop_fk(nullable=False, ondelete="CASCADE"):
    return sa.Column(
        "shop_id", sa.Uuid(), sa.ForeignKey("shop.id", ondelete=ondelete), nullable=nullable
    )


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _shopify_times():
    return [
        sa.Column("created_at_shopify", sa.DateTime(timezone=True)),
        sa.Column("updated_at_shopify", sa.DateTime(timezone=True)),
        sa.Column("synced_at", sa.DateTime(timezone=True)),
    ]


def upgrade() -> None:
    # Shop (tenant root)
    op.create_table(
        "shop",
        _id(),
        sa.Column("shop_domain", sa.String(255), nullable=False),
        sa.Column("shopify_shop_id", sa.BigInteger()),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("scope", sa.Text(), nullable=False),
        sa.Column("shop_name", sa.String(255)),
        sa.Column("shop_email", sa.String(255)),
        sa.Column("currency", sa.String(10), nullable=False),
        sa.Column("timezone", sa.String(100)),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("installed_at", sa.DateTime(timezone=True)),
        sa.Column("uninstalled_at", sa.DateTime(timezone=True)),
        sa.Column("last_sync_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_shop_shop_domain", "shop", ["shop_domain"], unique=True)
    op.create_index("ix_shop_is_active", "shop", ["is_active"])

    # Location
    op.create_table(
        "location",
        _id(),
        _shop_fk(),
        sa.Column("shopify_location_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.JSON()),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("synced_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint("shop_id", "shopify_location_id", name="uq_location_shop_shopify_id"),
    )
    op.create_index("ix_location_shop_id", "location", ["shop_id"])
    op.create_index("ix_location_shopify_location_id", "location", ["shopify_location_id"])

    # Product
    op.create_table(
        "product",
        _id(),
        _shop_fk(),
        sa.Column("shopify_product_id", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("vendor", sa.String(255)),
        sa.Column("product_type", sa.String(255)),
        sa.Column("handle", sa.String(255)),
        sa.Column("status", sa.String(20)),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column("variants", sa.JSON(), nullable=False),
        *_shopify_times(),
        *_timestamps(),
        sa.UniqueConstraint("shop_id", "shopify_product_id", name="uq_product_shop_shopify_id"),
    )
    op.create_index("ix_product_shop_id", "product", ["shop_id"])
    op.create_index("ix_product_shopify_product_id", "product", ["shopify_product_id"])
    op.create_index("ix_product_shop_status", "product", ["shop_id", "status"])

    # Customer
    op.create_table(
        "customer",
        _id(),
        _shop_fk(),
        sa.Column("shopify_customer_id", sa.BigInteger(), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("first_name", sa.String(255)),
        sa.Column("last_name", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("orders_count", sa.Integer(), nullable=False),
        sa.Column("total_spent", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(10)),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("accepts_marketing", sa.Boolean(), nullable=False),
        sa.Column("default_address", sa.JSON()),
        sa.Column("addresses", sa.JSON(), nullable=False),
        sa.Column("pii_redacted", sa.Boolean(), nullable=False),
        *_shopify_times(),
        *_timestamps(),
        sa.UniqueConstraint("shop_id", "shopify_customer_id", name="uq_customer_shop_shopify_id"),
    )
    op.create_index("ix_customer_shop_id", "customer", ["shop_id"])
    op.create_index("ix_customer_shopify_customer_id", "customer", ["shopify_customer_id"])
    op.create_index("ix_customer_shop_email", "customer", ["shop_id", "email"])

    # Order
    op.create_table(
        "shop_order",
        _id(),
        _shop_fk(),
        sa.Column("shopify_order_id", sa.BigInteger(), nullable=False),
        sa.Column("order_number", sa.Integer()),
        sa.Column("name", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customer.id", ondelete="SET NULL")),
        sa.Column("shopify_customer_id", sa.BigInteger()),
        sa.Column("financial_status", sa.String(30)),
        sa.Column("fulfillment_status", sa.String(30)),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("subtotal_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_tax", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_discounts", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(10)),
        sa.Column("line_items", sa.JSON(), nullable=False),
        sa.Column("shipping_address", sa.JSON()),
        sa.Column("billing_address", sa.JSON()),
        sa.Column("shipping_latitude", sa.Numeric(10, 7)),
        sa.Column("shipping_longitude", sa.Numeric(10, 7)),
        sa.Column("discount_codes", sa.JSON(), nullable=False),
        sa.Column("note", sa.Text()),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("closed_at", sa.DateTime(timezone=True)),
        sa.Column("pii_redacted", sa.Boolean(), nullable=False),
        *_shopify_times(),
        *_timestamps(),
        sa.UniqueConstraint("shop_id", "shopify_order_id", name="uq_order_shop_shopify_id"),
    )
    op.create_index("ix_shop_order_shop_id", "shop_order", ["shop_id"])
    op.create_index("ix_shop_order_shopify_order_id", "shop_order", ["shopify_order_id"])
    op.create_index("ix_shop_order_customer_id", "shop_order", ["customer_id"])
    op.create_index("ix_order_shop_created", "shop_order", ["shop_id", "created_at_shopify"])
    op.create_index("ix_order_shop_financial", "shop_order", ["shop_id", "financial_status"])

    # Inventory
    op.create_table(
        "inventory_item",
        _id(),
        _shop_fk(),
        sa.Column("shopify_inventory_item_id", sa.BigInteger(), nullable=False),
        sa.Column("shopify_variant_id", sa.BigInteger()),
        sa.Column("sku", sa.String(255)),
        sa.Column("tracked", sa.Boolean(), nullable=False),
        sa.Column("synced_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint(
            "shop_id", "shopify_inventory_item_id", name="uq_inventory_item_shop_shopify_id"
        ),
    )
    op.create_index("ix_inventory_item_shop_id", "inventory_item", ["shop_id"])
    op.create_index(
        "ix_inventory_item_shopify_inventory_item_id", "inventory_item", ["shopify_inventory_item_id"]
    )

    op.create_table(
        "inventory_level",
        _id(),
        _shop_fk(),
        sa.Column(
            "inventory_item_id", sa.Uuid(), sa.ForeignKey("inventory_item.id", ondelete="CASCADE")
        ),
        sa.Column("shopify_inventory_item_id", sa.BigInteger(), nullable=False),
        sa.Column("shopify_location_id", sa.BigInteger(), nullable=False),
        sa.Column("location_name", sa.String(255)),
        sa.Column("available", sa.Integer()),
        sa.Column("synced_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint(
            "shop_id",
            "shopify_inventory_item_id",
            "shopify_location_id",
            name="uq_inventory_level_shop_item_location",
        ),
    )
    op.create_index("ix_inventory_level_shop_id", "inventory_level", ["shop_id"])
    op.create_index("ix_inventory_level_inventory_item_id", "inventory_level", ["inventory_item_id"])

    # Realtime events
    op.create_table(
        "realtime_event",
        _id(),
        _shop_fk(),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("resource_type", sa.String(30), nullable=False),
        sa.Column("resource_id", sa.String(64)),
        sa.Column("shopify_id", sa.BigInteger()),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_realtime_event_shop_id", "realtime_event", ["shop_id"])
    op.create_index("ix_realtime_event_shop_created", "realtime_event", ["shop_id", "created_at"])
    op.create_index("ix_realtime_event_shop_resource", "realtime_event", ["shop_id", "resource_type"])

    # Sync ledger
    op.create_table(
        "sync_log",
        _id(),
        _shop_fk(),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("sync_type", sa.String(20), nullable=False),
        sa.Column("resource_type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("records_synced", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text()),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("heartbeat_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_sync_log_shop_id", "sync_log", ["shop_id"])
    op.create_index("ix_sync_log_run_id", "sync_log", ["run_id"])
    op.create_index("ix_sync_log_shop_started", "sync_log", ["shop_id", "started_at"])
    op.create_index("ix_sync_log_status", "sync_log", ["status"])

    # Webhook audit log
    op.create_table(
        "webhook_log",
        _id(),
        _shop_fk(nullable=True, ondelete="SET NULL"),
        sa.Column("shop_domain", sa.String(255), nullable=False),
        sa.Column("topic", sa.String(100), nullable=False),
        sa.Column("shopify_webhook_id", sa.String(100)),
        sa.Column("processed", sa.Boolean(), nullable=False),
        sa.Column("error_message", sa.Text()),
        sa.Column("payload", sa.JSON()),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_webhook_log_shop_id", "webhook_log", ["shop_id"])
    op.create_index("ix_webhook_log_shop_domain", "webhook_log", ["shop_domain"])
    op.create_index("ix_webhook_log_topic", "webhook_log", ["topic"])


def downgrade() -> None:
    op.drop_table("webhook_log")
    op.drop_table("sync_log")
    op.drop_table("realtime_event")
    op.drop_table("inventory_level")
    op.drop_table("inventory_item")
    op.drop_table("shop_order")
    op.drop_table("customer")
    op.drop_table("product")
    op.drop_table("location")
    op.drop_table("shop")
