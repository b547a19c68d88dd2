from decimal import Decimal

import pytest

from catalog_orders.domain.models import Product, ProductStatus
from catalog_orders.domain.exceptions import BusinessRuleError, InsufficientStockError, ValidationError


def _product(stock=10, price="100.00", status=ProductStatus.ACTIVE):
    return Product(name="Lamp", sku="LAMP-1", price=Decimal(price), stock_quantity=stock, status=status)


class TestProductCreate:
    def test_new_product_is_draft(self):
        product = Product.create("Lamp", "Desk lamp", "LAMP-1", Decimal("20.00"), 5, "alice")

        assert product.status == ProductStatus.DRAFT
        assert product.created_by == "alice"
        assert product.minimum_stock_level == 10

    def test_validation_collects_all_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            Product.create("", "", "", Decimal("0"), -1, "alice")

        assert exc_info.value.errors == [
            "Product name is required",
            "SKU is required",
            "Price must be greater than zero",
            "Stock quantity cannot be negative",
        ]


class TestProductPricing:
    def test_effective_price_without_discount(self):
        assert _product().effective_price == Decimal("100.00")

    def test_effective_price_with_discount(self):
        product = _product()
        product.set_discount(Decimal("80.00"), "alice")
        assert product.effective_price == Decimal("80.00")

        product.remove_discount("alice")
        assert product.effective_price == Decimal("100.00")

    @pytest.mark.parametrize("discount", ["100.00", "120.00"])
    def test_discount_must_be_below_price(self, discount):
        product = _product()
        with pytest.raises(BusinessRuleError, match="Discount price must be less than regular price"):
            product.set_discount(Decimal(discount), "alice")
        assert product.discount_price is None

    def test_negative_discount_rejected(self):
        product = _product()
        with pytest.raises(BusinessRuleError, match="Discount price cannot be negative"):
            product.set_discount(Decimal("-5.00"), "alice")
        assert product.discount_price is None


class TestProductStock:
    def test_reduce_stock(self):
        product = _product(stock=10)
        product.reduce_stock(4, "alice")
        assert product.stock_quantity == 6

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_reduce_requires_positive_quantity(self, quantity):
        product = _product(stock=10)
        with pytest.raises(BusinessRuleError):
            product.reduce_stock(quantity, "alice")
        assert product.stock_quantity == 10

    def test_reduce_more_than_available_leaves_stock_unchanged(self):
        product = _product(stock=3)
        with pytest.raises(InsufficientStockError, match="Insufficient stock for product 'Lamp'"):
            product.reduce_stock(5, "alice")
        assert product.stock_quantity == 3
        assert product.updated_at is None

    def test_reduce_to_zero_marks_out_of_stock(self):
        product = _product(stock=2)
        product.reduce_stock(2, "alice")
        assert product.status == ProductStatus.OUT_OF_STOCK
        assert not product.is_in_stock

    def test_add_stock_restores_active(self):
        product = _product(stock=0, status=ProductStatus.OUT_OF_STOCK)
        product.add_stock(5, "alice")
        assert product.status == ProductStatus.ACTIVE
        assert product.stock_quantity == 5

    def test_draft_product_stays_draft_at_zero(self):
        product = _product(stock=1, status=ProductStatus.DRAFT)
        product.update_stock(0, "alice")
        assert product.status == ProductStatus.DRAFT

    def test_low_stock_threshold_is_inclusive(self):
        assert _product(stock=10).is_low_stock
        assert not _product(stock=11).is_low_stock


class TestProductActivation:
    def test_cannot_activate_without_stock(self):
        product = _product(stock=0, status=ProductStatus.DRAFT)
        with pytest.raises(BusinessRuleError, match="Cannot activate product with zero stock"):
            product.activate("alice")

    def test_activate_and_deactivate(self):
        product = _product(stock=1, status=ProductStatus.DRAFT)
        product.activate("alice")
        assert product.is_in_stock

        product.deactivate("alice")
        assert product.status == ProductStatus.INACTIVE
        assert not product.is_in_stock


class TestProductUpdateInfo:
    def test_update_info(self):
        product = _product()

        product.update_info("Floor Lamp", "Tall", Decimal("150.00"), "bob")

        assert (product.name, product.description, product.price) == ("Floor Lamp", "Tall", Decimal("150.00"))
        assert product.updated_by == "bob"

    def test_update_info_validates(self):
        product = _product()
        with pytest.raises(ValidationError) as exc_info:
            product.update_info("", "", Decimal("-1"), "bob")
        assert exc_info.value.errors == ["Product name is required", "Price must be greater than zero"]
