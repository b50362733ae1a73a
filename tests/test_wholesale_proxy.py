"""Tests for wholesale purchases and proxy listings."""

from decimal import Decimal

import pytest

from src.core.exceptions import (
    InsufficientStockException,
    InvalidAddressException,
    NotFoundException,
    PermissionDeniedException,
    ProxyMergeConflictException,
    ValidationException,
)
from src.models.ecommerce import (
    Order, OrderItemStatus, OrderStatus, OrderType, PaymentMethod, PaymentStatus,
)
from src.models.inventory import ShopInventory, WarehouseInventory
from src.models.users import UserRole
from src.services.order_service import OrderService
from src.services.proxy_listing import ProxyListingService


@pytest.fixture
def supply(factory):
    """Wholesaler W with 100 units of X at 5.00, retailer R with a shop."""
    warehouse = factory.warehouse()
    source = factory.warehouse_listing(warehouse, stock=100, price="5.00")
    retailer = factory.user(UserRole.RETAILER)
    shop = factory.shop(retailer)
    return warehouse, source, retailer, shop


def warehouse_stock(db, row_id):
    return db.get(WarehouseInventory, row_id, populate_existing=True).stock_quantity


class TestProxyPurchase:
    def test_creates_proxy_listing(self, db, supply, notifier):
        warehouse, source, retailer, shop = supply

        result = OrderService.place_wholesale_order(
            db, retailer, source.id, 20, PaymentMethod.CASH_ON_DELIVERY,
            proxy=True, selling_price=Decimal("8.00"), notifier=notifier
        )

        assert warehouse_stock(db, source.id) == Decimal("80")

        listing = db.get(ShopInventory, result.shop_inventory_id)
        assert listing.shop_id == shop.id
        assert listing.product_id == source.product_id
        assert listing.stock_quantity == Decimal("20")
        assert listing.price == Decimal("8.00")
        assert listing.is_proxy_item is True
        assert listing.warehouse_inventory_id == source.id

        order = db.get(Order, result.order_id)
        assert order.order_type == OrderType.WHOLESALE
        assert order.warehouse_id == warehouse.id
        assert order.shop_id is None
        assert order.is_proxy_order is True
        assert order.status == OrderStatus.DELIVERED
        assert order.offline_order_delivery_date is not None
        assert order.total_amount == Decimal("100.00")
        assert order.payment_status == PaymentStatus.PENDING
        [item] = order.items
        assert item.warehouse_inventory_id == source.id
        assert item.shop_inventory_id is None
        assert item.status == OrderItemStatus.DELIVERED
        assert notifier.events == [("order_created", result.order_id)]

    def test_second_purchase_merges(self, db, supply):
        _, source, retailer, _ = supply

        first = OrderService.place_wholesale_order(
            db, retailer, source.id, 20, PaymentMethod.CASH_ON_DELIVERY,
            proxy=True, selling_price=Decimal("8.00")
        )
        second = OrderService.place_wholesale_order(
            db, retailer, source.id, 5, PaymentMethod.CASH_ON_DELIVERY, proxy=True
        )

        assert second.shop_inventory_id == first.shop_inventory_id
        listing = db.get(ShopInventory, first.shop_inventory_id, populate_existing=True)
        assert listing.stock_quantity == Decimal("25")
        assert listing.price == Decimal("8.00")
        assert warehouse_stock(db, source.id) == Decimal("75")

    def test_last_source_wins(self, db, factory, supply):
        _, source, retailer, _ = supply
        other_row = factory.warehouse_listing(factory.warehouse(), stock=10, price="4.00", product=source.product)

        OrderService.place_wholesale_order(
            db, retailer, source.id, 2, PaymentMethod.CASH_ON_DELIVERY,
            proxy=True, selling_price=Decimal("9.00")
        )
        result = OrderService.place_wholesale_order(
            db, retailer, other_row.id, 3, PaymentMethod.CASH_ON_DELIVERY, proxy=True
        )

        listing = db.get(ShopInventory, result.shop_inventory_id, populate_existing=True)
        assert listing.warehouse_inventory_id == other_row.id
        assert listing.stock_quantity == Decimal("5")

    def test_independent_stock_blocks_merge(self, db, factory, supply):
        _, source, retailer, shop = supply
        own = factory.shop_listing(shop, stock=4, product=source.product)

        with pytest.raises(ProxyMergeConflictException):
            OrderService.place_wholesale_order(
                db, retailer, source.id, 10, PaymentMethod.CASH_ON_DELIVERY,
                proxy=True, selling_price=Decimal("8.00")
            )

        assert warehouse_stock(db, source.id) == Decimal("100")
        assert db.query(Order).count() == 0
        own = db.get(ShopInventory, own.id, populate_existing=True)
        assert own.stock_quantity == Decimal("4")
        assert own.is_proxy_item is False

    def test_empty_independent_listing_is_converted(self, db, factory, supply):
        _, source, retailer, shop = supply
        own = factory.shop_listing(shop, stock=0, price="12.00", product=source.product)

        result = OrderService.place_wholesale_order(
            db, retailer, source.id, 10, PaymentMethod.CASH_ON_DELIVERY, proxy=True
        )

        assert result.shop_inventory_id == own.id
        listing = db.get(ShopInventory, own.id, populate_existing=True)
        assert listing.is_proxy_item is True
        assert listing.stock_quantity == Decimal("10")
        assert listing.price == Decimal("12.00")

    def test_new_listing_needs_selling_price(self, db, supply):
        _, source, retailer, _ = supply

        with pytest.raises(ValidationException):
            OrderService.place_wholesale_order(
                db, retailer, source.id, 10, PaymentMethod.CASH_ON_DELIVERY, proxy=True
            )

        assert warehouse_stock(db, source.id) == Decimal("100")
        assert db.query(Order).count() == 0

    def test_wholesaler_cannot_proxy(self, db, factory, supply):
        _, source, _, _ = supply
        other = factory.user(UserRole.WHOLESALER)
        factory.warehouse(other)

        with pytest.raises(PermissionDeniedException):
            OrderService.place_wholesale_order(
                db, other, source.id, 1, PaymentMethod.CASH_ON_DELIVERY, proxy=True
            )

    def test_retailer_without_shop(self, db, supply, factory):
        _, source, _, _ = supply
        shopless = factory.user(UserRole.RETAILER)

        with pytest.raises(NotFoundException):
            OrderService.place_wholesale_order(
                db, shopless, source.id, 1, PaymentMethod.CASH_ON_DELIVERY,
                proxy=True, selling_price=Decimal("6")
            )


class TestDirectWholesale:
    def test_plain_purchase_stays_pending(self, db, supply):
        _, source, retailer, _ = supply

        result = OrderService.place_wholesale_order(
            db, retailer, source.id, 10, PaymentMethod.CASH_ON_DELIVERY
        )

        assert result.shop_inventory_id is None
        order = db.get(Order, result.order_id)
        assert order.status == OrderStatus.PENDING
        assert order.is_proxy_order is False
        assert order.items[0].status == OrderItemStatus.PENDING
        assert warehouse_stock(db, source.id) == Decimal("90")

    def test_insufficient_warehouse_stock(self, db, supply):
        _, source, retailer, _ = supply

        with pytest.raises(InsufficientStockException) as exc:
            OrderService.place_wholesale_order(
                db, retailer, source.id, 101, PaymentMethod.CASH_ON_DELIVERY
            )

        assert exc.value.inventory_id == source.id
        assert warehouse_stock(db, source.id) == Decimal("100")

    def test_cannot_buy_from_own_warehouse(self, db, supply):
        warehouse, source, _, _ = supply

        with pytest.raises(ValidationException):
            OrderService.place_wholesale_order(
                db, warehouse.owner, source.id, 1, PaymentMethod.CASH_ON_DELIVERY
            )

    def test_customers_cannot_buy_wholesale(self, db, supply, customer):
        _, source, _, _ = supply
        with pytest.raises(PermissionDeniedException):
            OrderService.place_wholesale_order(
                db, customer, source.id, 1, PaymentMethod.CASH_ON_DELIVERY
            )

    def test_foreign_delivery_address(self, db, factory, supply):
        _, source, retailer, _ = supply
        stranger = factory.address(factory.customer())

        with pytest.raises(InvalidAddressException):
            OrderService.place_wholesale_order(
                db, retailer, source.id, 1, PaymentMethod.CASH_ON_DELIVERY,
                delivery_address_id=stranger.id
            )

    def test_gateway_payment_completes(self, db, supply, oracle):
        from src.schemas.ecommerce import PaymentAssertion

        _, source, retailer, _ = supply
        result = OrderService.place_wholesale_order(
            db, retailer, source.id, 1, PaymentMethod.CREDIT_CARD,
            payment_assertion=PaymentAssertion(
                gateway_order_id="o", gateway_payment_id="p", signature="s"
            ),
            oracle=oracle
        )

        order = db.get(Order, result.order_id)
        assert order.payment_status == PaymentStatus.COMPLETED
        assert oracle.calls == 1


class TestProxyListingService:
    def test_release_takes_stock_back(self, db, supply):
        _, source, retailer, shop = supply
        result = OrderService.place_wholesale_order(
            db, retailer, source.id, 6, PaymentMethod.CASH_ON_DELIVERY,
            proxy=True, selling_price=Decimal("8.00")
        )

        listing = ProxyListingService.release(db, shop.id, source.id, 4)
        db.commit()

        assert listing.id == result.shop_inventory_id
        assert db.get(ShopInventory, listing.id, populate_existing=True).stock_quantity == Decimal("2")

    def test_release_more_than_held(self, db, supply):
        _, source, retailer, shop = supply
        OrderService.place_wholesale_order(
            db, retailer, source.id, 2, PaymentMethod.CASH_ON_DELIVERY,
            proxy=True, selling_price=Decimal("8.00")
        )

        with pytest.raises(InsufficientStockException):
            ProxyListingService.release(db, shop.id, source.id, 3)
        db.rollback()
