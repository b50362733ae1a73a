# src/services/order_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc
import logging

from src.core.audit import audit_log
from src.core.database import atomic
from src.core.exceptions import (
    ValidationException, InvalidAddressException, EmptyCartException,
    PermissionDeniedException, NotFoundException, InsufficientStockException,
    PaymentVerificationFailedException, ConflictException, InvalidTransitionException
)
from src.models.users import User, UserRole
from src.models.ecommerce import (
    Cart, CartItem, Order, OrderItem, Payment, OrderType, OrderStatus,
    OrderItemStatus, PaymentMethod, PaymentStatus
)
from src.models.inventory import ShopInventory, WarehouseInventory, Shop
from src.schemas.ecommerce import PaymentAssertion, WholesaleOrderResult
from src.services.address_service import AddressService
from src.services.cart_service import CartService
from src.services.email_service import NotificationSink, dispatch_notification
from src.services.inventory import InventoryStore
from src.services.payment_service import PaymentOracle, get_payment_oracle
from src.services.proxy_listing import ProxyListingService
from src.services.seller_context import SellerContext

logger = logging.getLogger(__name__)


# ================================
# ORDER SERVICE
# ================================
class OrderService:

    # ================================
    # PAYMENT PRE-CHECK
    # ================================

    @staticmethod
    def verify_payment(
        payment_method: PaymentMethod,
        assertion: Optional[PaymentAssertion],
        oracle: Optional[PaymentOracle]
    ) -> PaymentStatus:
        """
        Runs before any database work. Gateway methods must present a valid
        assertion and settle as completed; cash on delivery stays pending.
        """
        payment_method = PaymentMethod(payment_method)
        if not payment_method.requires_gateway:
            return PaymentStatus.PENDING

        oracle = oracle or get_payment_oracle()
        if assertion is None or not oracle.verify(assertion):
            raise PaymentVerificationFailedException(
                f"Payment via {payment_method.value} could not be verified"
            )
        return PaymentStatus.COMPLETED

    # ================================
    # CART SETTLEMENT
    # ================================

    @staticmethod
    def settle_cart(
        db: Session,
        customer: User,
        delivery_address_id: int,
        payment_method: PaymentMethod,
        payment_assertion: Optional[PaymentAssertion] = None,
        oracle: Optional[PaymentOracle] = None,
        notifier: Optional[NotificationSink] = None
    ) -> List[int]:
        """
        Turn the customer's cart into one order per shop.

        Either every shop order is written, every listing debited and the
        cart emptied, or nothing changes at all.
        """
        if customer.role != UserRole.CUSTOMER:
            raise PermissionDeniedException("Only customers can check out a cart")

        payment_method = PaymentMethod(payment_method)
        payment_status = OrderService.verify_payment(payment_method, payment_assertion, oracle)
        transaction_id = payment_assertion.gateway_payment_id if payment_status == PaymentStatus.COMPLETED else None

        created = []
        with atomic(db):
            if not AddressService.is_owned_address(db, delivery_address_id, customer.id):
                raise InvalidAddressException(
                    f"Address {delivery_address_id} does not belong to customer {customer.id}"
                )

            # serializes concurrent checkouts of the same cart
            cart = db.query(Cart).filter(
                Cart.customer_id == customer.id
            ).with_for_update().populate_existing().first()
            if not cart:
                raise EmptyCartException()

            items = db.query(CartItem).options(
                joinedload(CartItem.shop_inventory)
            ).filter(
                CartItem.cart_id == cart.id
            ).order_by(CartItem.id).populate_existing().all()
            if not items:
                raise EmptyCartException()

            listings = InventoryStore.lock(db, ShopInventory, [i.shop_inventory_id for i in items])

            for shop_id, group in CartService.group_by_shop(items).items():
                total = Decimal("0")
                for item in group:
                    listing = listings[item.shop_inventory_id]
                    if listing.stock_quantity < item.quantity:
                        raise InsufficientStockException(
                            f"Insufficient stock for listing {listing.id}. "
                            f"Available: {listing.stock_quantity}, Required: {item.quantity}",
                            inventory_id=listing.id
                        )
                    total += listing.price * item.quantity

                order = Order(
                    customer_id=customer.id,
                    order_type=OrderType.RETAIL,
                    shop_id=shop_id,
                    status=OrderStatus.PENDING,
                    total_amount=total,
                    payment_method=payment_method,
                    payment_status=payment_status,
                    delivery_address_id=delivery_address_id,
                    is_proxy_order=False,
                )
                db.add(order)
                db.flush()

                db.add(Payment(
                    order_id=order.id,
                    amount=total,
                    payment_method=payment_method,
                    status=payment_status,
                    transaction_id=transaction_id,
                ))

                for item in group:
                    listing = listings[item.shop_inventory_id]
                    db.add(OrderItem(
                        order_id=order.id,
                        shop_inventory_id=listing.id,
                        source_warehouse_inventory_id=listing.warehouse_inventory_id,
                        quantity=item.quantity,
                        price_at_purchase=listing.price,
                        status=OrderItemStatus.PENDING,
                    ))
                    InventoryStore.decrement(db, ShopInventory, listing.id, item.quantity)

                created.append((order.id, shop_id, total))

            deleted = db.query(CartItem).filter(
                CartItem.cart_id == cart.id,
                CartItem.id.in_([i.id for i in items])
            ).delete(synchronize_session=False)
            if deleted != len(items):
                raise ConflictException("Cart changed during checkout")
            db.expire(cart, ["items"])

        order_ids = [order_id for order_id, _, _ in created]
        logger.info(f"Cart of customer {customer.id} settled into orders {order_ids}")
        for order_id, shop_id, total in created:
            audit_log(
                "order.settled", "order", order_id, customer.id,
                {"shop_id": shop_id, "total_amount": total, "payment_method": payment_method.value}
            )
            dispatch_notification(notifier, "order_created", order_id)

        return order_ids

    # ================================
    # WHOLESALE PURCHASE
    # ================================

    @staticmethod
    def place_wholesale_order(
        db: Session,
        buyer: User,
        warehouse_inventory_id: int,
        quantity,
        payment_method: PaymentMethod,
        payment_assertion: Optional[PaymentAssertion] = None,
        proxy: bool = False,
        selling_price: Optional[Decimal] = None,
        delivery_address_id: Optional[int] = None,
        oracle: Optional[PaymentOracle] = None,
        notifier: Optional[NotificationSink] = None
    ) -> WholesaleOrderResult:
        """
        Buy stock directly from a warehouse. With `proxy`, the bought stock is
        listed in the buyer's shop in the same transaction and the order is
        recorded as delivered offline.
        """
        if buyer.role not in (UserRole.RETAILER, UserRole.WHOLESALER):
            raise PermissionDeniedException("Only retailers and wholesalers can buy wholesale")
        if proxy and buyer.role != UserRole.RETAILER:
            raise PermissionDeniedException("Only retailers can proxy warehouse stock")

        quantity = InventoryStore.normalize_quantity(quantity)
        payment_method = PaymentMethod(payment_method)
        payment_status = OrderService.verify_payment(payment_method, payment_assertion, oracle)
        transaction_id = payment_assertion.gateway_payment_id if payment_status == PaymentStatus.COMPLETED else None

        with atomic(db, insert_race_tables=(ShopInventory.__tablename__,)):
            if delivery_address_id is not None:
                if not AddressService.is_owned_address(db, delivery_address_id, buyer.id):
                    raise InvalidAddressException(
                        f"Address {delivery_address_id} does not belong to user {buyer.id}"
                    )

            shop = None
            if proxy:
                shop = db.query(Shop).filter(Shop.owner_id == buyer.id).first()
                if not shop:
                    raise NotFoundException(f"Shop not found for user {buyer.id}")

            source = InventoryStore.lock(db, WarehouseInventory, [warehouse_inventory_id])[warehouse_inventory_id]
            if source.warehouse.owner_id == buyer.id:
                raise ValidationException("Cannot buy from your own warehouse")
            if source.stock_quantity < quantity:
                raise InsufficientStockException(
                    f"Insufficient stock for warehouse item {source.id}. "
                    f"Available: {source.stock_quantity}, Required: {quantity}",
                    inventory_id=source.id
                )

            unit_price = source.price
            total = unit_price * quantity
            status = OrderStatus.DELIVERED if proxy else OrderStatus.PENDING
            item_status = OrderItemStatus.DELIVERED if proxy else OrderItemStatus.PENDING

            order = Order(
                customer_id=buyer.id,
                order_type=OrderType.WHOLESALE,
                warehouse_id=source.warehouse_id,
                status=status,
                total_amount=total,
                payment_method=payment_method,
                payment_status=payment_status,
                delivery_address_id=delivery_address_id,
                is_proxy_order=proxy,
                offline_order_delivery_date=datetime.now(timezone.utc) if proxy else None,
            )
            db.add(order)
            db.flush()

            db.add(OrderItem(
                order_id=order.id,
                warehouse_inventory_id=source.id,
                quantity=quantity,
                price_at_purchase=unit_price,
                status=item_status,
            ))
            db.add(Payment(
                order_id=order.id,
                amount=total,
                payment_method=payment_method,
                status=payment_status,
                transaction_id=transaction_id,
            ))

            InventoryStore.decrement(db, WarehouseInventory, source.id, quantity)

            shop_inventory_id = None
            if proxy:
                listing = ProxyListingService.create_or_merge(
                    db, shop.id, source.id, quantity, selling_price
                )
                shop_inventory_id = listing.id

            order_id = order.id
            warehouse_id = source.warehouse_id

        logger.info(f"Wholesale order {order_id} placed by user {buyer.id} on warehouse {warehouse_id}")
        audit_log(
            "order.wholesale_placed", "order", order_id, buyer.id,
            {
                "warehouse_inventory_id": warehouse_inventory_id,
                "quantity": quantity,
                "total_amount": total,
                "proxy": proxy,
                "shop_inventory_id": shop_inventory_id,
            }
        )
        dispatch_notification(notifier, "order_created", order_id)

        return WholesaleOrderResult(order_id=order_id, shop_inventory_id=shop_inventory_id)

    # ================================
    # QUERIES
    # ================================

    @staticmethod
    def _order_query(db: Session):
        return db.query(Order).options(
            joinedload(Order.items),
            joinedload(Order.payment)
        )

    @staticmethod
    def list_customer_orders(db: Session, customer: User) -> List[Order]:
        """Retail orders placed by the customer, newest first"""
        return OrderService._order_query(db).filter(
            Order.customer_id == customer.id,
            Order.order_type == OrderType.RETAIL
        ).order_by(desc(Order.created_at), desc(Order.id)).all()

    @staticmethod
    def list_wholesale_orders(db: Session, buyer: User) -> List[Order]:
        """Wholesale orders placed by a retailer or wholesaler, newest first"""
        return OrderService._order_query(db).filter(
            Order.customer_id == buyer.id,
            Order.order_type == OrderType.WHOLESALE
        ).order_by(desc(Order.created_at), desc(Order.id)).all()

    @staticmethod
    def list_seller_orders(db: Session, seller: User) -> List[Order]:
        """Orders received by the seller's shop or warehouse"""
        ctx = SellerContext.for_user(seller)
        owner = ctx.owner_lookup(db, seller)
        return OrderService._order_query(db).filter(
            getattr(Order, ctx.order_link_field) == owner.id
        ).order_by(desc(Order.created_at), desc(Order.id)).all()

    @staticmethod
    def get_order(db: Session, order_id: int, actor: User) -> Order:
        order = OrderService._order_query(db).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundException(f"Order {order_id} not found")

        if order.customer_id == actor.id:
            return order
        if SellerContext.for_order(order).owns_order(db, actor, order):
            return order
        raise PermissionDeniedException(f"Order {order_id} is not visible to user {actor.id}")

    # ================================
    # PAYMENT STATUS
    # ================================

    @staticmethod
    def mark_payment_completed(db: Session, order_id: int, seller: User) -> Order:
        """Seller confirms cash was collected for a cash-on-delivery order"""
        with atomic(db):
            order = db.query(Order).filter(
                Order.id == order_id
            ).with_for_update().populate_existing().first()
            if not order:
                raise NotFoundException(f"Order {order_id} not found")

            if not SellerContext.for_order(order).owns_order(db, seller, order):
                raise PermissionDeniedException(f"Order {order_id} does not belong to this seller")

            if order.payment_method != PaymentMethod.CASH_ON_DELIVERY:
                raise ValidationException("Only cash-on-delivery payments can be confirmed manually")
            if order.status == OrderStatus.CANCELLED:
                raise InvalidTransitionException(f"Order {order_id} is cancelled")

            order.payment_status = PaymentStatus.COMPLETED
            if order.payment:
                order.payment.status = PaymentStatus.COMPLETED

        logger.info(f"Payment of order {order_id} marked completed by user {seller.id}")
        audit_log("order.payment_completed", "order", order_id, seller.id)
        return OrderService.get_order(db, order_id, seller)
