"""Tests for the flat-rate price book."""

import pytest

from app.pricing.engine import (
    ServiceItemNotFound,
    calculate_estimate,
    calculate_line_item,
    get_service_item,
)


class TestServiceLookup:

    def test_by_numeric_id_or_digit_string(self):
        assert get_service_item(2001)["code"] == "PL-FAUCET"
        assert get_service_item("2001")["code"] == "PL-FAUCET"

    def test_by_code(self):
        assert get_service_item("DR-LOCK")["id"] == 4001

    def test_missing(self):
        assert get_service_item(9999) is None


class TestLinePricing:

    def test_default_material_is_marked_up(self):
        line = calculate_line_item(get_service_item(2001))
        assert line["materialsPortion"] == 142
        assert line["laborPortion"] == 200
        # (200 + 142) x high risk 1.2 x safety 1.03
        assert line["lineTotal"] == 423

    def test_material_cost_overrides_default(self):
        line = calculate_line_item(get_service_item(2001), material_cost=100)
        assert line["materialsPortion"] == 118
        assert line["lineTotal"] == 393

    def test_premium_tier_and_quantity(self):
        line = calculate_line_item(get_service_item(1001), quantity=2, tier="premium")
        assert line["laborPortion"] == 330
        assert line["lineTotal"] == 430


class TestEstimateCalculation:

    def test_minimum_job_total(self):
        result = calculate_estimate([{"id": 1002}])
        assert result["subtotal"] == 98
        assert result["adjustedTotal"] == 150
        assert result["appliedMinimum"] is True

    def test_above_minimum(self):
        result = calculate_estimate([{"id": 2001}, {"id": "DR-LOCK"}])
        assert result["subtotal"] == 423 + 183
        assert result["adjustedTotal"] == result["subtotal"]
        assert result["appliedMinimum"] is False

    def test_unknown_item(self):
        with pytest.raises(ServiceItemNotFound):
            calculate_estimate([{"id": 4242}])


class TestPricebookEndpoints:

    def test_items_filtered_by_category(self, client, admin_headers):
        resp = client.get("/pricebook/items?category=plumbing", headers=admin_headers)
        assert resp.status_code == 200
        assert {item["category_key"] for item in resp.json()["items"]} == {"plumbing"}

    def test_categories(self, client, admin_headers):
        keys = [c["key"] for c in client.get("/pricebook/categories", headers=admin_headers).json()["categories"]]
        assert "electrical" in keys

    def test_calculate(self, client, admin_headers):
        resp = client.post(
            "/pricebook/calculate",
            json={"lineItems": [{"id": 2001, "tier": "standard"}]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["adjustedTotal"] == 423

    def test_calculate_unknown_item_is_400(self, client, admin_headers):
        resp = client.post("/pricebook/calculate", json={"lineItems": [{"id": 1}]}, headers=admin_headers)
        assert resp.status_code == 400

    def test_calculate_rejects_bad_tier(self, client, admin_headers):
        resp = client.post(
            "/pricebook/calculate", json={"lineItems": [{"id": 2001, "tier": "gold"}]}, headers=admin_headers
        )
        assert resp.status_code == 422
