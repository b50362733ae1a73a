# src/routes/orders.py
from fastapi import APIRouter, Depends, HTTPException, status, Path
from sqlalchemy.orm import Session
from typing import List
import logging

from src.core.database import get_db, retry_on_conflict
from src.core.auth_dependencies import get_current_account, require_role
from src.core.exceptions import CommerceException
from src.models.users import User, UserRole
from src.schemas.ecommerce import (
    OrderCreate, OrderOut, OrderItemOut, OrderItemStatusUpdate,
    SettlementResult, WholesaleOrderCreate, WholesaleOrderResult
)
from src.services.email_service import NotificationSink, get_notification_sink
from src.services.fulfillment import FulfillmentService
from src.services.order_service import OrderService
from src.services.payment_service import PaymentOracle, get_payment_oracle

logger = logging.getLogger(__name__)

order_router = APIRouter(prefix="/orders", tags=["Orders"])
wholesale_router = APIRouter(prefix="/wholesale-orders", tags=["Wholesale Orders"])

settle_cart = retry_on_conflict()(OrderService.settle_cart)
place_wholesale_order = retry_on_conflict()(OrderService.place_wholesale_order)


# ================================
# CUSTOMER ORDER ROUTES
# ================================

@order_router.post("/",
    response_model=SettlementResult,
    status_code=status.HTTP_201_CREATED,
    summary="Check out cart",
    description="Settle the cart into one order per shop"
)
def create_orders(
    data: OrderCreate,
    current_account: User = Depends(require_role([UserRole.CUSTOMER])),
    oracle: PaymentOracle = Depends(get_payment_oracle),
    notifier: NotificationSink = Depends(get_notification_sink),
    db: Session = Depends(get_db)
):
    """
    Check out the current cart.

    - **delivery_address_id**: One of the customer's addresses (required)
    - **payment_method**: credit_card, upi or cash_on_delivery
    - **payment**: Gateway assertion, required for credit_card and upi
    """
    try:
        order_ids = settle_cart(
            db, current_account, data.delivery_address_id, data.payment_method,
            payment_assertion=data.payment, oracle=oracle, notifier=notifier
        )
        return SettlementResult(order_ids=order_ids)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error settling cart of user {current_account.id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@order_router.get("/",
    response_model=List[OrderOut],
    summary="Order history"
)
def list_orders(
    current_account: User = Depends(require_role([UserRole.CUSTOMER])),
    db: Session = Depends(get_db)
):
    try:
        return OrderService.list_customer_orders(db, current_account)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@order_router.get("/{order_id}",
    response_model=OrderOut,
    summary="Get order",
    description="Visible to the buyer and to the selling shop or warehouse"
)
def get_order(
    order_id: int = Path(..., description="Order ID", gt=0),
    current_account: User = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return OrderService.get_order(db, order_id, current_account)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@order_router.post("/{order_id}/cancel",
    response_model=OrderOut,
    summary="Cancel order",
    description="Cancel every open item and restore its stock"
)
def cancel_order(
    order_id: int = Path(..., description="Order ID", gt=0),
    current_account: User = Depends(get_current_account),
    notifier: NotificationSink = Depends(get_notification_sink),
    db: Session = Depends(get_db)
):
    try:
        FulfillmentService.cancel_order(db, order_id, current_account, notifier=notifier)
        return OrderService.get_order(db, order_id, current_account)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error cancelling order {order_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@order_router.patch("/items/{order_item_id}/status",
    response_model=OrderItemOut,
    summary="Change item status",
    description="Buyer cancels a pending item or asks to return a delivered one"
)
def update_item_status(
    data: OrderItemStatusUpdate,
    order_item_id: int = Path(..., description="Order item ID", gt=0),
    current_account: User = Depends(get_current_account),
    notifier: NotificationSink = Depends(get_notification_sink),
    db: Session = Depends(get_db)
):
    try:
        return FulfillmentService.advance_item_status(
            db, order_item_id, data.status, current_account, notifier=notifier
        )
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating order item {order_item_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# ================================
# WHOLESALE ORDER ROUTES
# ================================

@wholesale_router.post("/",
    response_model=WholesaleOrderResult,
    status_code=status.HTTP_201_CREATED,
    summary="Buy from a warehouse",
    description="Direct wholesale purchase, optionally listed in the buyer's shop as proxy stock"
)
def create_wholesale_order(
    data: WholesaleOrderCreate,
    current_account: User = Depends(require_role([UserRole.RETAILER, UserRole.WHOLESALER])),
    oracle: PaymentOracle = Depends(get_payment_oracle),
    notifier: NotificationSink = Depends(get_notification_sink),
    db: Session = Depends(get_db)
):
    """
    Place a wholesale order.

    - **warehouse_inventory_id**: Warehouse row to buy from (required)
    - **quantity**: Whole, positive number of units
    - **proxy**: List the stock in the buyer's shop (retailers only)
    - **selling_price**: Shop price for a new proxy listing
    """
    try:
        return place_wholesale_order(
            db, current_account, data.warehouse_inventory_id, data.quantity, data.payment_method,
            payment_assertion=data.payment,
            proxy=data.proxy,
            selling_price=data.selling_price,
            delivery_address_id=data.delivery_address_id,
            oracle=oracle,
            notifier=notifier
        )
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error placing wholesale order for user {current_account.id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@wholesale_router.get("/",
    response_model=List[OrderOut],
    summary="Wholesale purchase history"
)
def list_wholesale_orders(
    current_account: User = Depends(require_role([UserRole.RETAILER, UserRole.WHOLESALER])),
    db: Session = Depends(get_db)
):
    try:
        return OrderService.list_wholesale_orders(db, current_account)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
