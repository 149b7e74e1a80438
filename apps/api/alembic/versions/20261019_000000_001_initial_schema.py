"""Initial schema: stores, catalog, storefront config, plugins and jobs

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUM_TYPES = (
    "database_provider",
    "database_connection_status",
    "domain_verification_status",
    "domain_verification_method",
    "domain_ssl_status",
    "shipping_type",
    "shipping_availability",
    "pdf_template_type",
    "plugin_status",
    "plugin_hook_type",
    "plugin_version_type",
    "plugin_component_type",
    "plugin_change_type",
    "slot_page_type",
    "slot_configuration_status",
    "background_job_type",
    "background_job_status",
)

SEO_COLUMNS = (
    ("meta_title", sa.String(255)),
    ("meta_description", sa.Text()),
    ("meta_keywords", sa.Text()),
    ("meta_robots_tag", sa.String(100)),
    ("og_title", sa.String(255)),
    ("og_description", sa.Text()),
    ("og_image_url", sa.Text()),
    ("twitter_title", sa.String(255)),
    ("twitter_description", sa.Text()),
    ("twitter_image_url", sa.Text()),
    ("canonical_url", sa.Text()),
)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.UUID(), nullable=False, server_default=sa.text("uuid_generate_v4()")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _jsonb(name: str, default: str = "{}") -> sa.Column:
    return sa.Column(name, postgresql.JSONB(), nullable=False, server_default=default)


def _parent_fk(table: str, column: str, parent: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column],
        [f"{parent}.id"],
        name=op.f(f"fk_{table}_{column}_{parent}"),
        ondelete="CASCADE",
    )


def _create_language_table(
    table: str,
    fk: str,
    parent: str,
    columns: Sequence[tuple[str, sa.types.TypeEngine]],
) -> None:
    op.create_table(
        table,
        *_base_columns(),
        sa.Column(fk, sa.UUID(), nullable=False),
        sa.Column("language_code", sa.String(10), nullable=False),
        *[sa.Column(name, type_, nullable=True) for name, type_ in columns],
        _parent_fk(table, fk, parent),
        sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{table}")),
        sa.UniqueConstraint(fk, "language_code", name=f"uq_{table}_entity_language"),
    )
    op.create_index(op.f(f"ix_{table}_{fk}"), table, [fk], unique=False)


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    # Create stores table
    op.create_table(
        "stores",
        *_base_columns(),
        sa.Column("owner_id", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _jsonb("settings"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_stores")),
        sa.UniqueConstraint("slug", name=op.f("uq_stores_slug")),
    )
    op.create_index(op.f("ix_stores_owner_id"), "stores", ["owner_id"], unique=False)

    # Create store_databases table
    op.create_table(
        "store_databases",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column(
            "provider",
            sa.Enum("supabase", "neon", "planetscale", "postgres", name="database_provider"),
            nullable=False,
        ),
        sa.Column("host", sa.String(255), nullable=True),
        sa.Column("database_name", sa.String(255), nullable=True),
        sa.Column("connection_string_encrypted", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "connection_status",
            sa.Enum("pending", "connected", "failed", name="database_connection_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("last_checked_at", sa.DateTime(timezone=True), nullable=True),
        _parent_fk("store_databases", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_store_databases")),
    )
    op.create_index(
        op.f("ix_store_databases_store_id"), "store_databases", ["store_id"], unique=True
    )

    # Create custom_domains table
    op.create_table(
        "custom_domains",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("subdomain", sa.String(255), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_redirect", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("redirect_to", sa.String(255), nullable=True),
        sa.Column(
            "verification_status",
            sa.Enum(
                "pending", "verifying", "verified", "failed", name="domain_verification_status"
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "verification_method",
            sa.Enum("txt", "cname", "http", name="domain_verification_method"),
            nullable=False,
            server_default="txt",
        ),
        sa.Column("verification_token", sa.String(64), nullable=False),
        sa.Column("verification_record_name", sa.String(255), nullable=True),
        sa.Column("verification_record_value", sa.String(255), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_verification_error", sa.Text(), nullable=True),
        sa.Column(
            "ssl_status",
            sa.Enum(
                "pending", "active", "failed", "expired", "renewing", name="domain_ssl_status"
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("ssl_issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ssl_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ssl_auto_renew", sa.Boolean(), nullable=False, server_default=sa.true()),
        _jsonb("dns_records", "[]"),
        _jsonb("custom_headers"),
        _parent_fk("custom_domains", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_custom_domains")),
        sa.UniqueConstraint("domain", name=op.f("uq_custom_domains_domain")),
    )
    op.create_index(op.f("ix_custom_domains_store_id"), "custom_domains", ["store_id"])
    op.create_index(
        "uq_custom_domains_one_primary_per_store",
        "custom_domains",
        ["store_id"],
        unique=True,
        postgresql_where=sa.text("is_primary"),
    )

    # Create products table
    op.create_table(
        "products",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("sku", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="active"),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("compare_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("weight", sa.Numeric(10, 3), nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attribute_set_id", sa.String(100), nullable=True),
        _jsonb("attributes"),
        _jsonb("category_ids", "[]"),
        _jsonb("translations"),
        _jsonb("seo"),
        sa.Column("embedding", Vector(1536), nullable=True),
        _parent_fk("products", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_products")),
    )
    op.create_index(op.f("ix_products_store_id"), "products", ["store_id"])
    op.create_index("ix_products_store_sku", "products", ["store_id", "sku"], unique=True)
    op.execute(
        """
        CREATE INDEX ix_products_embedding ON products
        USING hnsw (embedding vector_cosine_ops)
        """
    )

    # Create categories and cms_pages tables
    op.create_table(
        "categories",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("parent_id", sa.UUID(), nullable=True),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _jsonb("translations"),
        _jsonb("seo"),
        _parent_fk("categories", "store_id", "stores"),
        sa.ForeignKeyConstraint(
            ["parent_id"],
            ["categories.id"],
            name=op.f("fk_categories_parent_id_categories"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_categories")),
    )
    op.create_index(op.f("ix_categories_store_id"), "categories", ["store_id"])
    op.create_index("ix_categories_store_slug", "categories", ["store_id", "slug"], unique=True)

    op.create_table(
        "cms_pages",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _jsonb("translations"),
        _jsonb("seo"),
        _parent_fk("cms_pages", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_cms_pages")),
    )
    op.create_index(op.f("ix_cms_pages_store_id"), "cms_pages", ["store_id"])
    op.create_index("ix_cms_pages_store_slug", "cms_pages", ["store_id", "slug"], unique=True)

    # Create shipping_methods table
    op.create_table(
        "shipping_methods",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "type",
            sa.Enum(
                "flat_rate", "free_shipping", "weight_based", "price_based", name="shipping_type"
            ),
            nullable=False,
        ),
        sa.Column("flat_rate_cost", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column(
            "free_shipping_min_order", sa.Numeric(12, 2), nullable=False, server_default="0"
        ),
        _jsonb("weight_ranges", "[]"),
        _jsonb("price_ranges", "[]"),
        sa.Column(
            "availability",
            sa.Enum("all", "specific_countries", name="shipping_availability"),
            nullable=False,
            server_default="all",
        ),
        _jsonb("countries", "[]"),
        sa.Column("min_delivery_days", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("max_delivery_days", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        _jsonb("conditions"),
        _jsonb("translations"),
        _parent_fk("shipping_methods", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shipping_methods")),
    )
    op.create_index(op.f("ix_shipping_methods_store_id"), "shipping_methods", ["store_id"])

    # Create product_labels table
    op.create_table(
        "product_labels",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("text", sa.String(255), nullable=False),
        sa.Column("color", sa.String(20), nullable=False, server_default="#000000"),
        sa.Column("background_color", sa.String(20), nullable=False, server_default="#FFFFFF"),
        sa.Column("position", sa.String(20), nullable=False, server_default="top-left"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        _jsonb("conditions"),
        _jsonb("translations"),
        _parent_fk("product_labels", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_product_labels")),
    )
    op.create_index(op.f("ix_product_labels_store_id"), "product_labels", ["store_id"])
    op.create_index(
        "ix_product_labels_store_slug", "product_labels", ["store_id", "slug"], unique=True
    )

    # Normalized translation and SEO tables
    _create_language_table(
        "product_translations",
        "product_id",
        "products",
        [("name", sa.String(500)), ("description", sa.Text()), ("short_description", sa.Text())],
    )
    _create_language_table(
        "category_translations",
        "category_id",
        "categories",
        [("name", sa.String(255)), ("description", sa.Text())],
    )
    _create_language_table(
        "cms_page_translations",
        "cms_page_id",
        "cms_pages",
        [("title", sa.String(255)), ("content", sa.Text()), ("excerpt", sa.Text())],
    )
    _create_language_table(
        "product_label_translations",
        "product_label_id",
        "product_labels",
        [("name", sa.String(255)), ("text", sa.String(255))],
    )
    _create_language_table(
        "shipping_method_translations",
        "shipping_method_id",
        "shipping_methods",
        [("name", sa.String(255)), ("description", sa.Text())],
    )
    _create_language_table("product_seo", "product_id", "products", SEO_COLUMNS)
    _create_language_table("category_seo", "category_id", "categories", SEO_COLUMNS)
    _create_language_table("cms_page_seo", "cms_page_id", "cms_pages", SEO_COLUMNS)

    # Create pdf_templates table
    op.create_table(
        "pdf_templates",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("identifier", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "template_type",
            sa.Enum("invoice", "shipment", "packing_slip", "receipt", name="pdf_template_type"),
            nullable=False,
        ),
        sa.Column("html_template", sa.Text(), nullable=False),
        sa.Column("default_html_template", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        _jsonb("variables", "[]"),
        _jsonb("settings"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        _parent_fk("pdf_templates", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_pdf_templates")),
        sa.UniqueConstraint("store_id", "identifier", name="uq_pdf_templates_store_identifier"),
    )
    op.create_index(op.f("ix_pdf_templates_store_id"), "pdf_templates", ["store_id"])

    # Create plugin tables
    op.create_table(
        "plugin_registry",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("version", sa.String(50), nullable=False, server_default="1.0.0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("author", sa.String(255), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", name="plugin_status"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_deprecated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deprecation_reason", sa.Text(), nullable=True),
        _jsonb("manifest"),
        _parent_fk("plugin_registry", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plugin_registry")),
        sa.UniqueConstraint("slug", name=op.f("uq_plugin_registry_slug")),
    )
    op.create_index(op.f("ix_plugin_registry_store_id"), "plugin_registry", ["store_id"])

    op.create_table(
        "plugin_widgets",
        *_base_columns(),
        sa.Column("plugin_id", sa.UUID(), nullable=False),
        sa.Column("widget_id", sa.String(255), nullable=False),
        sa.Column("widget_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("component_code", sa.Text(), nullable=False),
        _jsonb("default_config"),
        sa.Column("category", sa.String(100), nullable=False, server_default="functional"),
        sa.Column("icon", sa.String(100), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        _parent_fk("plugin_widgets", "plugin_id", "plugin_registry"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plugin_widgets")),
        sa.UniqueConstraint("plugin_id", "widget_id", name="uq_plugin_widgets_plugin_widget"),
    )
    op.create_index(op.f("ix_plugin_widgets_plugin_id"), "plugin_widgets", ["plugin_id"])

    op.create_table(
        "plugin_hooks",
        *_base_columns(),
        sa.Column("plugin_id", sa.UUID(), nullable=False),
        sa.Column("hook_name", sa.String(255), nullable=False),
        sa.Column(
            "hook_type",
            sa.Enum("filter", "action", name="plugin_hook_type"),
            nullable=False,
            server_default="filter",
        ),
        sa.Column("handler_code", sa.Text(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        _parent_fk("plugin_hooks", "plugin_id", "plugin_registry"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plugin_hooks")),
    )
    op.create_index(op.f("ix_plugin_hooks_plugin_id"), "plugin_hooks", ["plugin_id"])
    op.create_index(op.f("ix_plugin_hooks_hook_name"), "plugin_hooks", ["hook_name"])

    op.create_table(
        "plugin_event_listeners",
        *_base_columns(),
        sa.Column("plugin_id", sa.UUID(), nullable=False),
        sa.Column("event_name", sa.String(255), nullable=False),
        sa.Column("listener_code", sa.Text(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        _parent_fk("plugin_event_listeners", "plugin_id", "plugin_registry"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plugin_event_listeners")),
    )
    op.create_index(
        op.f("ix_plugin_event_listeners_plugin_id"), "plugin_event_listeners", ["plugin_id"]
    )
    op.create_index(
        op.f("ix_plugin_event_listeners_event_name"), "plugin_event_listeners", ["event_name"]
    )

    # Create plugin version control tables
    op.create_table(
        "plugin_version_history",
        *_base_columns(),
        sa.Column("plugin_id", sa.UUID(), nullable=False),
        sa.Column("version_number", sa.String(50), nullable=False),
        sa.Column(
            "version_type",
            sa.Enum("snapshot", "patch", name="plugin_version_type"),
            nullable=False,
        ),
        sa.Column("parent_version_id", sa.UUID(), nullable=True),
        sa.Column("commit_message", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("snapshot_distance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("files_changed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lines_added", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lines_deleted", sa.Integer(), nullable=False, server_default="0"),
        _parent_fk("plugin_version_history", "plugin_id", "plugin_registry"),
        sa.ForeignKeyConstraint(
            ["parent_version_id"],
            ["plugin_version_history.id"],
            name=op.f("fk_plugin_version_history_parent_version_id_plugin_version_history"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plugin_version_history")),
        sa.UniqueConstraint(
            "plugin_id", "version_number", name="uq_plugin_version_history_number"
        ),
        sa.CheckConstraint(
            "snapshot_distance >= 0 AND snapshot_distance <= 10",
            name=op.f("ck_plugin_version_history_snapshot_distance_range"),
        ),
    )
    op.create_index(
        op.f("ix_plugin_version_history_plugin_id"), "plugin_version_history", ["plugin_id"]
    )
    op.create_index(
        "uq_plugin_version_history_one_current",
        "plugin_version_history",
        ["plugin_id"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "plugin_version_patches",
        *_base_columns(),
        sa.Column("version_id", sa.UUID(), nullable=False),
        sa.Column(
            "component_type",
            sa.Enum(
                "hook", "event", "widget", "manifest", "metadata", name="plugin_component_type"
            ),
            nullable=False,
        ),
        sa.Column("component_key", sa.String(255), nullable=True),
        sa.Column(
            "change_type",
            sa.Enum("added", "modified", "deleted", name="plugin_change_type"),
            nullable=False,
        ),
        _jsonb("patch_operations", "[]"),
        _jsonb("reverse_patch", "[]"),
        _parent_fk("plugin_version_patches", "version_id", "plugin_version_history"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plugin_version_patches")),
    )
    op.create_index(
        op.f("ix_plugin_version_patches_version_id"), "plugin_version_patches", ["version_id"]
    )

    op.create_table(
        "plugin_version_snapshots",
        *_base_columns(),
        sa.Column("version_id", sa.UUID(), nullable=False),
        _jsonb("snapshot_data"),
        _parent_fk("plugin_version_snapshots", "version_id", "plugin_version_history"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plugin_version_snapshots")),
        sa.UniqueConstraint("version_id", name=op.f("uq_plugin_version_snapshots_version_id")),
    )

    op.create_table(
        "plugin_version_tags",
        *_base_columns(),
        sa.Column("plugin_id", sa.UUID(), nullable=False),
        sa.Column("version_id", sa.UUID(), nullable=False),
        sa.Column("tag_name", sa.String(100), nullable=False),
        sa.Column("tag_type", sa.String(50), nullable=False, server_default="custom"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=True),
        _parent_fk("plugin_version_tags", "plugin_id", "plugin_registry"),
        _parent_fk("plugin_version_tags", "version_id", "plugin_version_history"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plugin_version_tags")),
        sa.UniqueConstraint("plugin_id", "tag_name", name="uq_plugin_version_tags_plugin_tag"),
    )
    op.create_index(
        op.f("ix_plugin_version_tags_plugin_id"), "plugin_version_tags", ["plugin_id"]
    )

    # Create slot_configurations table
    op.create_table(
        "slot_configurations",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column(
            "page_type",
            sa.Enum(
                "cart",
                "category",
                "product",
                "checkout",
                "success",
                "header",
                "account",
                "login",
                name="slot_page_type",
            ),
            nullable=False,
        ),
        _jsonb("configuration"),
        sa.Column(
            "status",
            sa.Enum(
                "init",
                "draft",
                "acceptance",
                "published",
                "reverted",
                name="slot_configuration_status",
            ),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("version_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by", sa.String(255), nullable=True),
        sa.Column("acceptance_published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("parent_version_id", sa.UUID(), nullable=True),
        sa.Column("current_edit_id", sa.UUID(), nullable=True),
        sa.Column(
            "has_unpublished_changes", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        _jsonb("metadata"),
        _parent_fk("slot_configurations", "store_id", "stores"),
        sa.ForeignKeyConstraint(
            ["parent_version_id"],
            ["slot_configurations.id"],
            name=op.f("fk_slot_configurations_parent_version_id_slot_configurations"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_slot_configurations")),
    )
    op.create_index(op.f("ix_slot_configurations_store_id"), "slot_configurations", ["store_id"])
    op.create_index(
        "ix_slot_configurations_store_page_status",
        "slot_configurations",
        ["store_id", "page_type", "status"],
    )

    # Create background_jobs table
    op.create_table(
        "background_jobs",
        *_base_columns(),
        sa.Column("store_id", sa.UUID(), nullable=True),
        sa.Column(
            "job_type",
            sa.Enum(
                "embedding_backfill", "translation_normalization", name="background_job_type"
            ),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("pending", "running", "completed", "failed", name="background_job_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("created_by", sa.String(255), nullable=True),
        _jsonb("params"),
        _jsonb("stats"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("celery_task_id", sa.String(255), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        _parent_fk("background_jobs", "store_id", "stores"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_background_jobs")),
    )
    op.create_index(op.f("ix_background_jobs_store_id"), "background_jobs", ["store_id"])


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_products_embedding")

    # Drop tables in reverse dependency order
    op.drop_table("background_jobs")
    op.drop_table("slot_configurations")
    op.drop_table("plugin_version_tags")
    op.drop_table("plugin_version_snapshots")
    op.drop_table("plugin_version_patches")
    op.drop_table("plugin_version_history")
    op.drop_table("plugin_event_listeners")
    op.drop_table("plugin_hooks")
    op.drop_table("plugin_widgets")
    op.drop_table("plugin_registry")
    op.drop_table("pdf_templates")
    for table in (
        "cms_page_seo",
        "category_seo",
        "product_seo",
        "shipping_method_translations",
        "product_label_translations",
        "cms_page_translations",
        "category_translations",
        "product_translations",
    ):
        op.drop_table(table)
    op.drop_table("product_labels")
    op.drop_table("shipping_methods")
    op.drop_table("cms_pages")
    op.drop_table("categories")
    op.drop_table("products")
    op.drop_table("custom_domains")
    op.drop_table("store_databases")
    op.drop_table("stores")

    # Drop enum types
    for enum_name in reversed(ENUM_TYPES):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
