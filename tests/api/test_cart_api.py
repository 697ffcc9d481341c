"""Tests for cart endpoints."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from tillpoint.api.dependencies import Till
from tillpoint.domain.entities import Product


# ============================================================================
# Add Item Tests
# ============================================================================


class TestAddItem:
    """Tests for POST /cart/items."""

    def test_add_item(self, client: TestClient) -> None:
        """Adding a product returns the updated cart."""
        response = client.post("/cart/items", json={"product_id": "latte", "quantity": 2})

        assert response.status_code == 200
        data = response.json()
        assert len(data["lines"]) == 1
        assert data["lines"][0]["quantity"] == 2
        assert Decimal(data["totals"]["subtotal"]) == Decimal("5.00")
        assert Decimal(data["totals"]["tax"]) == Decimal("0.50")
        assert Decimal(data["totals"]["total"]) == Decimal("5.50")
        assert data["item_count"] == 2

    def test_add_same_item_merges(self, client: TestClient) -> None:
        """Identical additions share one line."""
        client.post("/cart/items", json={"product_id": "latte", "quantity": 2})
        response = client.post("/cart/items", json={"product_id": "latte"})

        data = response.json()
        assert len(data["lines"]) == 1
        assert data["lines"][0]["quantity"] == 3
        assert Decimal(data["lines"][0]["line_subtotal"]) == Decimal("7.50")

    def test_add_with_note_creates_new_line(self, client: TestClient) -> None:
        """A different note is a different line."""
        client.post("/cart/items", json={"product_id": "latte"})
        response = client.post("/cart/items", json={"product_id": "latte", "note": "oat"})

        assert len(response.json()["lines"]) == 2

    def test_percent_off_badge(self, client: TestClient) -> None:
        """Percent-off products are discounted."""
        response = client.post("/cart/items", json={"product_id": "promo", "quantity": 2})

        totals = response.json()["totals"]
        assert Decimal(totals["discount"]) == Decimal("4.00")
        assert Decimal(totals["total"]) == Decimal("18.00")

    def test_unknown_product_is_404(self, client: TestClient) -> None:
        """Products unknown to snapshot and database are rejected."""
        response = client.post("/cart/items", json={"product_id": "ghost"})

        assert response.status_code == 404
        data = response.json()
        assert data["error_code"] == "PRODUCT_NOT_FOUND"
        assert data["details"]["product_id"] == "ghost"

    def test_falls_back_to_database(self, client: TestClient, query_service: AsyncMock) -> None:
        """Products missing from the snapshot are looked up in the products table."""
        query_service.get_product.return_value = Product(
            id="db-1", name="Bagel", category="bakery", price=Decimal("1.20")
        )

        response = client.post("/cart/items", json={"product_id": "db-1"})

        assert response.status_code == 200
        assert response.json()["lines"][0]["name"] == "Bagel"
        query_service.get_product.assert_awaited_once_with("db-1")

    def test_cart_persisted_after_add(self, client: TestClient, till: Till) -> None:
        """Every cart mutation is written to the state file."""
        client.post("/cart/items", json={"product_id": "latte"})

        stored = json.loads(till.storage.path.read_text(encoding="utf-8"))
        assert stored["lines"][0]["product_id"] == "latte"


# ============================================================================
# Selection and Customization Tests
# ============================================================================


class TestSelection:
    """Tests for POST /cart/selections and /cart/customizations."""

    def test_plain_product_added_directly(self, client: TestClient) -> None:
        """Products without options go straight into the cart."""
        response = client.post("/cart/selections", json={"product_id": "latte"})

        assert response.status_code == 200
        data = response.json()
        assert data["decision"] == "direct_add"
        assert not data["requires_customization"]
        assert data["line"]["quantity"] == 1
        assert len(data["cart"]["lines"]) == 1

    def test_variant_product_requires_customization(self, client: TestClient) -> None:
        """Products with options leave the cart untouched."""
        response = client.post("/cart/selections", json={"product_id": "tee"})

        data = response.json()
        assert data["decision"] == "await_customization"
        assert data["requires_customization"]
        assert data["line"] is None
        assert data["product"]["has_variants"]
        assert data["cart"]["is_empty"]

    def test_customization_adds_line(self, client: TestClient) -> None:
        """Confirmed options and note land on a new line."""
        response = client.post(
            "/cart/customizations",
            json={
                "product_id": "tee",
                "selected_variant": {"color": "Red", "size": "XL"},
                "note": "gift",
            },
        )

        assert response.status_code == 200
        line = response.json()["lines"][0]
        assert Decimal(line["unit_price"]) == Decimal("14.00")
        assert line["note"] == "gift"
        assert line["selected_variant"]["color"] == "Red"
        assert line["variant_description"] == "Color: Red, Size: XL"

    def test_different_variants_are_separate_lines(self, client: TestClient) -> None:
        """Each variant combination has its own line."""
        for size in ("M", "XL", "M"):
            response = client.post(
                "/cart/customizations",
                json={"product_id": "tee", "selected_variant": {"size": size}},
            )

        lines = response.json()["lines"]
        assert sorted(line["quantity"] for line in lines) == [1, 2]

    def test_unknown_option_is_400(self, client: TestClient) -> None:
        """Options the product does not offer are rejected."""
        response = client.post(
            "/cart/customizations",
            json={"product_id": "tee", "selected_variant": {"color": "Green"}},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_VARIANT_SELECTION"


# ============================================================================
# Line Update Tests
# ============================================================================


class TestLineUpdates:
    """Tests for PATCH and DELETE on cart lines."""

    def _add_latte(self, client: TestClient) -> str:
        response = client.post("/cart/items", json={"product_id": "latte"})
        return response.json()["lines"][0]["line_key"]

    def test_update_quantity(self, client: TestClient) -> None:
        """Quantities are replaced."""
        line_key = self._add_latte(client)

        response = client.patch(f"/cart/lines/{line_key}", json={"quantity": 4})

        assert response.status_code == 200
        assert response.json()["lines"][0]["quantity"] == 4

    def test_update_to_zero_removes(self, client: TestClient) -> None:
        """Quantity 0 removes the line."""
        line_key = self._add_latte(client)

        response = client.patch(f"/cart/lines/{line_key}", json={"quantity": 0})

        data = response.json()
        assert data["is_empty"]
        assert Decimal(data["totals"]["total"]) == Decimal("0")

    def test_update_unknown_line_is_404(self, client: TestClient) -> None:
        """Unknown line keys are reported."""
        response = client.patch("/cart/lines/nope", json={"quantity": 2})

        assert response.status_code == 404
        assert response.json()["error_code"] == "CART_LINE_NOT_FOUND"

    def test_remove_line_is_idempotent(self, client: TestClient) -> None:
        """Deleting a line twice succeeds both times."""
        line_key = self._add_latte(client)

        first = client.delete(f"/cart/lines/{line_key}")
        second = client.delete(f"/cart/lines/{line_key}")

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["is_empty"]


class TestCartLifecycle:
    """Tests for clearing and discounts."""

    def test_get_empty_cart(self, client: TestClient) -> None:
        """A fresh cart is empty with zero totals."""
        response = client.get("/cart")

        data = response.json()
        assert data["is_empty"]
        assert Decimal(data["totals"]["total"]) == Decimal("0")

    def test_clear_cart(self, client: TestClient) -> None:
        """Clearing empties the cart."""
        client.post("/cart/items", json={"product_id": "latte"})
        client.post("/cart/items", json={"product_id": "promo"})

        response = client.delete("/cart")

        assert response.json()["is_empty"]

    def test_apply_and_remove_discount(self, client: TestClient) -> None:
        """Manual discounts stack and can be removed."""
        client.post("/cart/items", json={"product_id": "latte", "quantity": 2})

        applied = client.post("/cart/discount", json={"amount": "1.00"})
        removed = client.delete("/cart/discount")

        assert Decimal(applied.json()["totals"]["discount"]) == Decimal("1.00")
        assert Decimal(applied.json()["manual_discount"]) == Decimal("1.00")
        assert Decimal(removed.json()["totals"]["discount"]) == Decimal("0")

    def test_negative_discount_rejected(self, client: TestClient) -> None:
        """Negative amounts fail request validation."""
        response = client.post("/cart/discount", json={"amount": "-1"})

        assert response.status_code == 422
