"""SQLAlchemy models."""

from app.models.background_job import BackgroundJob, JobStatus, JobType
from app.models.base import Base
from app.models.category import Category, CmsPage
from app.models.custom_domain import (
    CustomDomain,
    SslStatus,
    VerificationMethod,
    VerificationStatus,
)
from app.models.pdf_template import PdfTemplate, TemplateType
from app.models.plugin import (
    HookType,
    PluginEventListener,
    PluginHook,
    PluginRegistry,
    PluginStatus,
    PluginWidget,
)
from app.models.plugin_version import (
    ChangeType,
    ComponentType,
    PluginVersion,
    PluginVersionPatch,
    PluginVersionSnapshot,
    PluginVersionTag,
    VersionType,
)
from app.models.product import Product
from app.models.product_label import ProductLabel
from app.models.shipping_method import ShippingAvailability, ShippingMethod, ShippingType
from app.models.slot_configuration import PageType, SlotConfiguration, SlotConfigurationStatus
from app.models.store import Store
from app.models.store_database import ConnectionStatus, DatabaseProvider, StoreDatabase
from app.models.translation import (
    CategorySeo,
    CategoryTranslation,
    CmsPageSeo,
    CmsPageTranslation,
    ProductLabelTranslation,
    ProductSeo,
    ProductTranslation,
    ShippingMethodTranslation,
)

__all__ = [
    # Base
    "Base",
    # Store & tenancy
    "Store",
    "StoreDatabase",
    "DatabaseProvider",
    "ConnectionStatus",
    "CustomDomain",
    "VerificationStatus",
    "VerificationMethod",
    "SslStatus",
    # Catalog
    "Product",
    "Category",
    "CmsPage",
    # Normalized translations
    "ProductTranslation",
    "CategoryTranslation",
    "CmsPageTranslation",
    "ProductLabelTranslation",
    "ShippingMethodTranslation",
    "ProductSeo",
    "CategorySeo",
    "CmsPageSeo",
    # Checkout & display
    "ShippingMethod",
    "ShippingType",
    "ShippingAvailability",
    "ProductLabel",
    "PdfTemplate",
    "TemplateType",
    # Page builder
    "SlotConfiguration",
    "PageType",
    "SlotConfigurationStatus",
    # Plugins
    "PluginRegistry",
    "PluginStatus",
    "PluginWidget",
    "PluginHook",
    "HookType",
    "PluginEventListener",
    "PluginVersion",
    "PluginVersionPatch",
    "PluginVersionSnapshot",
    "PluginVersionTag",
    "VersionType",
    "ComponentType",
    "ChangeType",
    # Jobs
    "BackgroundJob",
    "JobType",
    "JobStatus",
]
