# src/routes/seller_orders.py
from fastapi import APIRouter, Depends, HTTPException, status, Path
from sqlalchemy.orm import Session
from typing import List
import logging

from src.core.database import get_db
from src.core.auth_dependencies import require_role
from src.core.exceptions import CommerceException
from src.models.users import User, UserRole
from src.models.ecommerce import PaymentStatus
from src.schemas.ecommerce import (
    OrderOut, OrderItemOut, OrderItemStatusUpdate, PaymentStatusUpdate
)
from src.services.email_service import NotificationSink, get_notification_sink
from src.services.fulfillment import FulfillmentService
from src.services.order_service import OrderService

logger = logging.getLogger(__name__)

seller_order_router = APIRouter(prefix="/seller/orders", tags=["Seller Orders"])

seller_only = require_role([UserRole.RETAILER, UserRole.WHOLESALER])


@seller_order_router.get("/",
    response_model=List[OrderOut],
    summary="Received orders",
    description="Orders placed with the seller's shop or warehouse"
)
def list_received_orders(
    current_account: User = Depends(seller_only),
    db: Session = Depends(get_db)
):
    try:
        return OrderService.list_seller_orders(db, current_account)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@seller_order_router.patch("/items/{order_item_id}/status",
    response_model=OrderItemOut,
    summary="Advance item status",
    description="processed, shipped, delivered, cancelled or returned"
)
def advance_item_status(
    data: OrderItemStatusUpdate,
    order_item_id: int = Path(..., description="Order item ID", gt=0),
    current_account: User = Depends(seller_only),
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
        logger.error(f"Error advancing order item {order_item_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@seller_order_router.patch("/{order_id}/payment",
    response_model=OrderOut,
    summary="Confirm cash payment",
    description="Mark a cash-on-delivery order as paid"
)
def update_payment_status(
    data: PaymentStatusUpdate,
    order_id: int = Path(..., description="Order ID", gt=0),
    current_account: User = Depends(seller_only),
    db: Session = Depends(get_db)
):
    if data.status != PaymentStatus.COMPLETED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment can only be marked completed")
    try:
        return OrderService.mark_payment_completed(db, order_id, current_account)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating payment of order {order_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
