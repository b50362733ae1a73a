# src/services/fulfillment.py
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc
import logging

from src.core.audit import audit_log
from src.core.database import atomic
from src.core.exceptions import (
    NotFoundException, PermissionDeniedException, InvalidTransitionException
)
from src.models.users import User
from src.models.ecommerce import Order, OrderItem, OrderStatus, OrderItemStatus
from src.models.inventory import Shop, ShopInventory, WarehouseInventory
from src.services.email_service import NotificationSink, dispatch_notification
from src.services.inventory import InventoryStore
from src.services.proxy_listing import ProxyListingService
from src.services.seller_context import SellerContext

logger = logging.getLogger(__name__)

S = OrderItemStatus

ALLOWED_TRANSITIONS: Dict[OrderItemStatus, FrozenSet[OrderItemStatus]] = {
    S.PENDING: frozenset({S.PROCESSED, S.CANCELLED}),
    S.PROCESSED: frozenset({S.SHIPPED, S.CANCELLED}),
    S.SHIPPED: frozenset({S.DELIVERED, S.CANCELLED}),
    S.DELIVERED: frozenset({S.TO_RETURN}),
    S.TO_RETURN: frozenset({S.RETURNED}),
    S.CANCELLED: frozenset(),
    S.RETURNED: frozenset(),
}

# statuses a seller may set; the table above decides from where
SELLER_TARGETS = frozenset({S.PROCESSED, S.SHIPPED, S.DELIVERED, S.CANCELLED, S.RETURNED})

# (from, to) moves open to the buyer of the order
CUSTOMER_MOVES = frozenset({(S.PENDING, S.CANCELLED), (S.DELIVERED, S.TO_RETURN)})

OPEN_STATUSES = frozenset({S.PENDING, S.PROCESSED, S.SHIPPED})

_PROGRESS = [S.PENDING, S.PROCESSED, S.SHIPPED, S.DELIVERED]


def derive_order_status(statuses: Iterable[OrderItemStatus]) -> OrderStatus:
    """
    Aggregate order status from its item statuses.

    cancelled when every item is cancelled; otherwise, ignoring cancelled
    items: delivered when all remaining are delivered or in the return flow,
    shipped when any is shipped, processed when all are at least processed,
    else pending.
    """
    statuses = [S(s) for s in statuses]
    if not statuses:
        return OrderStatus.PENDING

    live = [s for s in statuses if s != S.CANCELLED]
    if not live:
        return OrderStatus.CANCELLED

    if all(s in (S.DELIVERED, S.TO_RETURN, S.RETURNED) for s in live):
        return OrderStatus.DELIVERED
    if any(s == S.SHIPPED for s in live):
        return OrderStatus.SHIPPED

    def rank(s):
        # return flow only starts after delivery
        return _PROGRESS.index(s) if s in _PROGRESS else len(_PROGRESS)

    if all(rank(s) >= rank(S.PROCESSED) for s in live):
        return OrderStatus.PROCESSED
    return OrderStatus.PENDING


class FulfillmentService:

    # ================================
    # LOCKING
    # ================================

    @staticmethod
    def _lock_order(db: Session, order_id: int) -> Tuple[Order, List[OrderItem]]:
        """Order row first, then all its items in id order."""
        order = db.query(Order).filter(
            Order.id == order_id
        ).with_for_update().populate_existing().first()
        if not order:
            raise NotFoundException(f"Order {order_id} not found")

        items = db.query(OrderItem).filter(
            OrderItem.order_id == order.id
        ).order_by(OrderItem.id).with_for_update().populate_existing().all()
        return order, items

    @staticmethod
    def _roles(db: Session, order: Order, actor: User) -> Tuple[bool, bool]:
        is_seller = SellerContext.for_order(order).owns_order(db, actor, order)
        is_buyer = order.customer_id == actor.id
        if not is_seller and not is_buyer:
            raise PermissionDeniedException(f"User {actor.id} has no access to order {order.id}")
        return is_seller, is_buyer

    # ================================
    # STOCK REVERSAL
    # ================================

    @staticmethod
    def _restore_stock(db: Session, order: Order, item: OrderItem, new_status: OrderItemStatus):
        if item.shop_inventory_id is not None:
            InventoryStore.increment(db, ShopInventory, item.shop_inventory_id, item.quantity)
            return

        InventoryStore.increment(db, WarehouseInventory, item.warehouse_inventory_id, item.quantity)

        if order.is_proxy_order and new_status == S.RETURNED:
            shop = db.query(Shop).filter(Shop.owner_id == order.customer_id).first()
            if not shop:
                raise NotFoundException(f"Shop of proxy buyer {order.customer_id} not found")
            ProxyListingService.release(db, shop.id, item.warehouse_inventory_id, item.quantity)

    # ================================
    # ITEM TRANSITIONS
    # ================================

    @staticmethod
    def advance_item_status(
        db: Session,
        order_item_id: int,
        new_status: OrderItemStatus,
        actor: User,
        notifier: Optional[NotificationSink] = None
    ) -> OrderItem:
        new_status = S(new_status)

        with atomic(db):
            item = db.get(OrderItem, order_item_id)
            if not item:
                raise NotFoundException(f"Order item {order_item_id} not found")

            order, items = FulfillmentService._lock_order(db, item.order_id)
            item = next(i for i in items if i.id == order_item_id)
            current = item.status

            is_seller, is_buyer = FulfillmentService._roles(db, order, actor)

            if new_status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransitionException(
                    f"Order item {item.id} cannot move from {current.value} to {new_status.value}"
                )

            allowed = (is_seller and new_status in SELLER_TARGETS) or \
                (is_buyer and (current, new_status) in CUSTOMER_MOVES)
            if not allowed:
                raise PermissionDeniedException(
                    f"User {actor.id} may not move order item {item.id} to {new_status.value}"
                )

            item.status = new_status
            if new_status in (S.CANCELLED, S.RETURNED):
                FulfillmentService._restore_stock(db, order, item, new_status)

            order.status = derive_order_status(i.status for i in items)
            db.flush()

            order_id = order.id
            order_status = order.status
            refund_due = item.line_total if new_status == S.RETURNED else None

        logger.info(f"Order item {order_item_id}: {current.value} -> {new_status.value} (order {order_id} is {order_status.value})")
        audit_log(
            "order_item.status_changed", "order_item", order_item_id, actor.id,
            {"order_id": order_id, "from": current.value, "to": new_status.value}
        )
        if refund_due is not None:
            audit_log("order_item.refund_due", "order_item", order_item_id, actor.id,
                      {"order_id": order_id, "amount": refund_due})
        dispatch_notification(notifier, "status_changed", order_item_id, new_status.value)

        return db.get(OrderItem, order_item_id)

    # ================================
    # ORDER CANCELLATION
    # ================================

    @staticmethod
    def cancel_order(
        db: Session,
        order_id: int,
        actor: User,
        notifier: Optional[NotificationSink] = None
    ) -> Order:
        """Cancel every open item of the order and put its stock back"""
        with atomic(db):
            order, items = FulfillmentService._lock_order(db, order_id)
            is_seller, is_buyer = FulfillmentService._roles(db, order, actor)

            if order.status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
                raise InvalidTransitionException(f"Order {order_id} is already {order.status.value}")

            open_items = [i for i in items if i.status in OPEN_STATUSES]
            if not open_items:
                raise InvalidTransitionException(f"Order {order_id} has no cancellable items")

            if not is_seller and any(i.status != S.PENDING for i in open_items):
                raise PermissionDeniedException(
                    f"Order {order_id} is already being processed and can only be cancelled by the seller"
                )

            for item in open_items:
                item.status = S.CANCELLED
                FulfillmentService._restore_stock(db, order, item, S.CANCELLED)

            order.status = derive_order_status(i.status for i in items)
            db.flush()
            cancelled_ids = [i.id for i in open_items]

        logger.info(f"Order {order_id} cancelled by user {actor.id}, items {cancelled_ids}")
        audit_log("order.cancelled", "order", order_id, actor.id, {"items": cancelled_ids})
        for item_id in cancelled_ids:
            dispatch_notification(notifier, "status_changed", item_id, S.CANCELLED.value)

        return db.get(Order, order_id)

    # ================================
    # RETURNS
    # ================================

    @staticmethod
    def request_return(db: Session, order_item_id: int, customer: User,
                       notifier: Optional[NotificationSink] = None) -> OrderItem:
        return FulfillmentService.advance_item_status(db, order_item_id, S.TO_RETURN, customer, notifier)

    @staticmethod
    def confirm_return(db: Session, order_item_id: int, seller: User,
                       notifier: Optional[NotificationSink] = None) -> OrderItem:
        return FulfillmentService.advance_item_status(db, order_item_id, S.RETURNED, seller, notifier)

    @staticmethod
    def list_return_requests(db: Session, seller: User) -> List[OrderItem]:
        """Items awaiting the seller's return confirmation"""
        ctx = SellerContext.for_user(seller)
        owner = ctx.owner_lookup(db, seller)
        return db.query(OrderItem).join(Order).options(
            joinedload(OrderItem.order)
        ).filter(
            getattr(Order, ctx.order_link_field) == owner.id,
            OrderItem.status == S.TO_RETURN
        ).order_by(desc(OrderItem.id)).all()
