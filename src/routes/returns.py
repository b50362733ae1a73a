# src/routes/returns.py
from fastapi import APIRouter, Depends, HTTPException, status, Path
from sqlalchemy.orm import Session
from typing import List
import logging

from src.core.database import get_db
from src.core.auth_dependencies import get_current_account, require_role
from src.core.exceptions import CommerceException
from src.models.users import User, UserRole
from src.schemas.ecommerce import OrderItemOut, ReturnRequestCreate, ReturnRequestOut
from src.services.email_service import NotificationSink, get_notification_sink
from src.services.fulfillment import FulfillmentService

logger = logging.getLogger(__name__)

returns_router = APIRouter(prefix="/returns", tags=["Returns"])


@returns_router.post("/",
    response_model=OrderItemOut,
    status_code=status.HTTP_201_CREATED,
    summary="Request a return",
    description="Buyer asks to return a delivered item"
)
def request_return(
    data: ReturnRequestCreate,
    current_account: User = Depends(get_current_account),
    notifier: NotificationSink = Depends(get_notification_sink),
    db: Session = Depends(get_db)
):
    try:
        return FulfillmentService.request_return(db, data.order_item_id, current_account, notifier=notifier)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error requesting return of item {data.order_item_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@returns_router.get("/",
    response_model=List[ReturnRequestOut],
    summary="Pending returns",
    description="Items waiting for the seller to confirm the return"
)
def list_return_requests(
    current_account: User = Depends(require_role([UserRole.RETAILER, UserRole.WHOLESALER])),
    db: Session = Depends(get_db)
):
    try:
        items = FulfillmentService.list_return_requests(db, current_account)
        return [
            ReturnRequestOut(
                order_item_id=item.id,
                order_id=item.order_id,
                customer_id=item.order.customer_id,
                quantity=item.quantity,
                price_at_purchase=item.price_at_purchase,
                status=item.status,
            )
            for item in items
        ]
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@returns_router.post("/{order_item_id}/confirm",
    response_model=OrderItemOut,
    summary="Confirm a return",
    description="Seller receives the item back; stock is restored"
)
def confirm_return(
    order_item_id: int = Path(..., description="Order item ID", gt=0),
    current_account: User = Depends(require_role([UserRole.RETAILER, UserRole.WHOLESALER])),
    notifier: NotificationSink = Depends(get_notification_sink),
    db: Session = Depends(get_db)
):
    try:
        return FulfillmentService.confirm_return(db, order_item_id, current_account, notifier=notifier)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error confirming return of item {order_item_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
