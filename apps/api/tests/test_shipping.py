"""Tests for shipping methods and checkout quotes.

Covers:
- Per-type field validation and cost calculation
- Country availability and cart conditions
- CRUD on /api/v1/stores/{store_id}/shipping-methods
- POST /api/v1/storefront/shipping-methods/quote
"""

from decimal import Decimal
from typing import Any, Callable

import pytest
from httpx import AsyncClient

from app.models.shipping_method import ShippingAvailability, ShippingMethod, ShippingType
from app.models.store import Store
from app.services.shipping_service import (
    ShippingValidationError,
    calculate_cost,
    is_available_for_country,
    matches_conditions,
    validate_method_fields,
)


def _url(store: Store, suffix: str = "") -> str:
    return f"/api/v1/stores/{store.id}/shipping-methods{suffix}"


QUOTE_URL = "/api/v1/storefront/shipping-methods/quote"

WEIGHT_RANGES = [
    {"min_weight": 0, "max_weight": 5, "cost": 4.99},
    {"min_weight": 5, "max_weight": 20, "cost": 12.5},
]


def _method(type: ShippingType, **fields: Any) -> ShippingMethod:  # noqa: A002
    values: dict[str, Any] = {
        "name": "Test",
        "flat_rate_cost": Decimal("0"),
        "free_shipping_min_order": Decimal("0"),
        "weight_ranges": [],
        "price_ranges": [],
        "availability": ShippingAvailability.ALL,
        "countries": [],
    }
    values.update(fields)
    return ShippingMethod(type=type, **values)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidateMethodFields:
    def test_flat_rate_requires_cost(self) -> None:
        with pytest.raises(ShippingValidationError, match="flat_rate_cost"):
            validate_method_fields({"type": "flat_rate"})

    def test_free_shipping_requires_threshold(self) -> None:
        with pytest.raises(ShippingValidationError, match="free_shipping_min_order"):
            validate_method_fields({"type": "free_shipping"})

    def test_weight_based_requires_ranges(self) -> None:
        with pytest.raises(ShippingValidationError, match="weight_ranges"):
            validate_method_fields({"type": "weight_based", "weight_ranges": []})

    def test_inverted_range_rejected(self) -> None:
        with pytest.raises(ShippingValidationError, match="min_price must not exceed"):
            validate_method_fields(
                {"type": "price_based", "price_ranges": [{"min_price": 50, "max_price": 10, "cost": 1}]}
            )

    def test_specific_countries_requires_list(self) -> None:
        with pytest.raises(ShippingValidationError, match="countries"):
            validate_method_fields(
                {"type": "flat_rate", "flat_rate_cost": 5, "availability": "specific_countries"}
            )

    def test_delivery_days_order(self) -> None:
        with pytest.raises(ShippingValidationError, match="min_delivery_days"):
            validate_method_fields(
                {
                    "type": "flat_rate",
                    "flat_rate_cost": 5,
                    "min_delivery_days": 9,
                    "max_delivery_days": 3,
                }
            )

    def test_valid_weight_based(self) -> None:
        validate_method_fields({"type": "weight_based", "weight_ranges": WEIGHT_RANGES})


# ---------------------------------------------------------------------------
# Cost calculation
# ---------------------------------------------------------------------------


class TestCalculateCost:
    def test_flat_rate(self) -> None:
        method = _method(ShippingType.FLAT_RATE, flat_rate_cost=Decimal("5.00"))

        assert calculate_cost(method, Decimal("10"), Decimal("1")) == Decimal("5.00")

    def test_free_above_threshold(self) -> None:
        method = _method(
            ShippingType.FREE_SHIPPING,
            free_shipping_min_order=Decimal("100"),
            flat_rate_cost=Decimal("7.50"),
        )

        assert calculate_cost(method, Decimal("100"), Decimal("0")) == Decimal("0")
        assert calculate_cost(method, Decimal("99.99"), Decimal("0")) == Decimal("7.50")

    def test_weight_tiers(self) -> None:
        method = _method(ShippingType.WEIGHT_BASED, weight_ranges=WEIGHT_RANGES)

        assert calculate_cost(method, Decimal("0"), Decimal("3")) == Decimal("4.99")
        assert calculate_cost(method, Decimal("0"), Decimal("12")) == Decimal("12.5")

    def test_weight_outside_tiers(self) -> None:
        method = _method(ShippingType.WEIGHT_BASED, weight_ranges=WEIGHT_RANGES)

        assert calculate_cost(method, Decimal("0"), Decimal("25")) is None

    def test_price_tiers(self) -> None:
        method = _method(
            ShippingType.PRICE_BASED,
            price_ranges=[
                {"min_price": 0, "max_price": 50, "cost": 6},
                {"min_price": 50, "max_price": 1000, "cost": 0},
            ],
        )

        assert calculate_cost(method, Decimal("20"), Decimal("0")) == Decimal("6")
        assert calculate_cost(method, Decimal("75"), Decimal("0")) == Decimal("0")


class TestAvailability:
    def test_all_countries(self) -> None:
        assert is_available_for_country(_method(ShippingType.FLAT_RATE), None)

    def test_specific_countries(self) -> None:
        method = _method(
            ShippingType.FLAT_RATE,
            availability=ShippingAvailability.SPECIFIC_COUNTRIES,
            countries=["DE", "NL"],
        )

        assert is_available_for_country(method, "de")
        assert not is_available_for_country(method, "US")
        assert not is_available_for_country(method, None)


class TestMatchesConditions:
    ITEMS = [
        {
            "sku": "TEE-1",
            "category_ids": ["c-shirts"],
            "attribute_set_id": "apparel",
            "attributes": {"color": "Red"},
        }
    ]

    def test_empty_conditions_match(self) -> None:
        assert matches_conditions({}, self.ITEMS)
        assert matches_conditions(None, [])

    def test_category_condition(self) -> None:
        assert matches_conditions({"categories": ["c-shirts", "c-hats"]}, self.ITEMS)
        assert not matches_conditions({"categories": ["c-hats"]}, self.ITEMS)

    def test_attribute_set_and_sku(self) -> None:
        assert matches_conditions({"attribute_sets": ["apparel"], "skus": ["TEE-1"]}, self.ITEMS)
        assert not matches_conditions({"skus": ["MUG-1"]}, self.ITEMS)

    def test_attribute_condition_case_insensitive(self) -> None:
        conditions = {"attribute_conditions": [{"attribute_code": "color", "attribute_value": "red"}]}

        assert matches_conditions(conditions, self.ITEMS)

    def test_attribute_condition_on_list_attributes(self) -> None:
        items = [{"attributes": [{"code": "size", "value": "XL"}]}]
        conditions = {"attribute_conditions": [{"attribute_code": "size", "attribute_value": "xl"}]}

        assert matches_conditions(conditions, items)


# ---------------------------------------------------------------------------
# Owner CRUD
# ---------------------------------------------------------------------------


class TestShippingMethodRoutes:
    async def test_create_flat_rate(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(
            _url(store),
            json={"name": "Standard", "type": "flat_rate", "flat_rate_cost": "4.95"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["store_id"] == str(store.id)
        assert Decimal(data["flat_rate_cost"]) == Decimal("4.95")
        assert Decimal(data["free_shipping_min_order"]) == Decimal("0")
        assert data["availability"] == "all"

    async def test_create_weight_based(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(
            _url(store),
            json={"name": "By weight", "type": "weight_based", "weight_ranges": WEIGHT_RANGES},
        )

        assert response.status_code == 201
        ranges = response.json()["weight_ranges"]
        assert len(ranges) == 2
        assert Decimal(ranges[0]["cost"]) == Decimal("4.99")

    async def test_create_missing_type_field(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(_url(store), json={"name": "Free", "type": "free_shipping"})

        assert response.status_code == 422
        assert "free_shipping_min_order" in response.json()["detail"]

    async def test_list_sorted(
        self,
        client: AsyncClient,
        store: Store,
        shipping_method_factory: Callable[..., Any],
    ) -> None:
        await shipping_method_factory(store_id=store.id, name="Express", sort_order=2)
        await shipping_method_factory(store_id=store.id, name="Standard", sort_order=1)
        await shipping_method_factory(store_id=store.id, name="Legacy", is_active=False)

        response = await client.get(_url(store))
        assert [m["name"] for m in response.json()["items"]] == ["Legacy", "Standard", "Express"]

        response = await client.get(_url(store), params={"active_only": True})
        assert response.json()["total"] == 2

    async def test_update_validates_merged_fields(
        self,
        client: AsyncClient,
        store: Store,
        shipping_method_factory: Callable[..., Any],
    ) -> None:
        method = await shipping_method_factory(store_id=store.id, flat_rate_cost=Decimal("5"))

        response = await client.patch(_url(store, f"/{method.id}"), json={"type": "price_based"})
        assert response.status_code == 422

        response = await client.patch(
            _url(store, f"/{method.id}"),
            json={
                "type": "price_based",
                "price_ranges": [{"min_price": 0, "max_price": 100, "cost": 3}],
            },
        )
        assert response.status_code == 200
        assert response.json()["type"] == "price_based"

    async def test_delete(
        self,
        client: AsyncClient,
        store: Store,
        shipping_method_factory: Callable[..., Any],
    ) -> None:
        method = await shipping_method_factory(store_id=store.id, flat_rate_cost=Decimal("5"))

        response = await client.delete(_url(store, f"/{method.id}"))
        assert response.status_code == 204

        response = await client.get(_url(store, f"/{method.id}"))
        assert response.status_code == 404

    async def test_other_store_method_hidden(
        self,
        client: AsyncClient,
        store: Store,
        other_store: Store,
        shipping_method_factory: Callable[..., Any],
    ) -> None:
        method = await shipping_method_factory(store_id=other_store.id, flat_rate_cost=Decimal("5"))

        response = await client.get(_url(store, f"/{method.id}"))

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Storefront quote
# ---------------------------------------------------------------------------


class TestQuote:
    async def test_quote_filters_and_prices(
        self,
        unauthed_client: AsyncClient,
        store: Store,
        shipping_method_factory: Callable[..., Any],
    ) -> None:
        await shipping_method_factory(
            store_id=store.id, name="Flat", flat_rate_cost=Decimal("5.00"), sort_order=2
        )
        await shipping_method_factory(
            store_id=store.id,
            name="Free over 100",
            type=ShippingType.FREE_SHIPPING,
            free_shipping_min_order=Decimal("100"),
            flat_rate_cost=Decimal("7.50"),
            sort_order=1,
        )
        await shipping_method_factory(
            store_id=store.id,
            name="By weight",
            type=ShippingType.WEIGHT_BASED,
            weight_ranges=WEIGHT_RANGES,
            sort_order=3,
        )
        await shipping_method_factory(
            store_id=store.id,
            name="Germany only",
            flat_rate_cost=Decimal("2"),
            availability=ShippingAvailability.SPECIFIC_COUNTRIES,
            countries=["DE"],
        )
        await shipping_method_factory(
            store_id=store.id, name="Off", flat_rate_cost=Decimal("1"), is_active=False
        )

        response = await unauthed_client.post(
            QUOTE_URL,
            json={
                "items": [{"sku": "TEE-1", "price": "30.00", "quantity": 2, "weight": "1.5"}],
                "country": "US",
            },
            headers={"x-store-id": str(store.id)},
        )

        assert response.status_code == 200
        quotes = response.json()["quotes"]
        assert [q["name"] for q in quotes] == ["Free over 100", "Flat", "By weight"]
        assert [Decimal(q["cost"]) for q in quotes] == [
            Decimal("7.50"),
            Decimal("5.00"),
            Decimal("4.99"),
        ]

    async def test_quote_applies_conditions(
        self,
        unauthed_client: AsyncClient,
        store: Store,
        shipping_method_factory: Callable[..., Any],
    ) -> None:
        await shipping_method_factory(
            store_id=store.id,
            name="Bulky",
            flat_rate_cost=Decimal("25"),
            conditions={"skus": ["SOFA-1"]},
        )

        response = await unauthed_client.post(
            QUOTE_URL,
            json={"items": [{"sku": "TEE-1", "price": "10"}]},
            headers={"x-store-id": str(store.id)},
        )

        assert response.status_code == 200
        assert response.json()["quotes"] == []

    async def test_quote_requires_items(self, unauthed_client: AsyncClient, store: Store) -> None:
        response = await unauthed_client.post(
            QUOTE_URL, json={"items": []}, headers={"x-store-id": str(store.id)}
        )

        assert response.status_code == 422

    async def test_quote_unknown_store(self, unauthed_client: AsyncClient) -> None:
        response = await unauthed_client.post(
            QUOTE_URL,
            json={"items": [{"price": "10"}]},
            headers={"x-store-id": "00000000-0000-0000-0000-000000000000"},
        )

        assert response.status_code == 404
