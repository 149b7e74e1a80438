"""API v1 router combining all route modules."""

from fastapi import APIRouter, Depends

from app.api.v1 import (
    domains,
    health,
    jobs,
    pdf_templates,
    plugin_versions,
    plugins,
    product_labels,
    products,
    shipping_methods,
    slot_configurations,
    stores,
)
from app.core.deps import get_session_id

api_router = APIRouter()

# Include health check routes (no prefix)
api_router.include_router(health.router)

# Stores, store settings and per-store database config
api_router.include_router(
    stores.router,
    prefix="/stores",
    tags=["stores"],
)

# === Owner endpoints (store resolved from the path, ownership checked) ===

api_router.include_router(
    domains.router,
    prefix="/stores/{store_id}/domains",
    tags=["domains"],
)

api_router.include_router(
    products.router,
    prefix="/stores/{store_id}/products",
    tags=["products"],
)

api_router.include_router(
    shipping_methods.router,
    prefix="/stores/{store_id}/shipping-methods",
    tags=["shipping"],
)

api_router.include_router(
    product_labels.router,
    prefix="/stores/{store_id}/product-labels",
    tags=["product-labels"],
)

api_router.include_router(
    pdf_templates.router,
    prefix="/stores/{store_id}/pdf-templates",
    tags=["pdf-templates"],
)

# Page builder (draft/publish lifecycle)
api_router.include_router(
    slot_configurations.router,
    prefix="/stores/{store_id}/slot-configurations",
    tags=["slot-configurations"],
)

# Plugins and their version control
api_router.include_router(
    plugins.router,
    prefix="/stores/{store_id}/plugins",
    tags=["plugins"],
)

api_router.include_router(
    plugin_versions.router,
    prefix="/stores/{store_id}/plugins/{plugin_id}/versions",
    tags=["plugin-versions"],
)

# Long-running admin work
api_router.include_router(
    jobs.router,
    prefix="/jobs",
    tags=["jobs"],
)

# === Storefront endpoints (store resolved from the x-store-id header, no auth) ===

storefront_dependencies = [Depends(get_session_id)]

api_router.include_router(
    products.storefront_router,
    prefix="/storefront/products",
    tags=["storefront"],
    dependencies=storefront_dependencies,
)

api_router.include_router(
    shipping_methods.storefront_router,
    prefix="/storefront/shipping-methods",
    tags=["storefront"],
    dependencies=storefront_dependencies,
)

api_router.include_router(
    product_labels.storefront_router,
    prefix="/storefront/product-labels",
    tags=["storefront"],
    dependencies=storefront_dependencies,
)

api_router.include_router(
    slot_configurations.storefront_router,
    prefix="/storefront/slot-configurations",
    tags=["storefront"],
    dependencies=storefront_dependencies,
)

api_router.include_router(
    plugins.storefront_router,
    prefix="/storefront/plugins",
    tags=["storefront"],
    dependencies=storefront_dependencies,
)
