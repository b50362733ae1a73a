# src/routes/cart.py
from fastapi import APIRouter, Depends, HTTPException, status, Path
from sqlalchemy.orm import Session
import logging

from src.core.database import get_db, retry_on_conflict
from src.core.auth_dependencies import require_role
from src.core.exceptions import CommerceException
from src.models.users import User, UserRole
from src.schemas.ecommerce import CartItemAdd, CartItemUpdate, CartView
from src.services.cart_service import CartService

logger = logging.getLogger(__name__)

cart_router = APIRouter(prefix="/cart", tags=["Cart"])

customer_only = require_role([UserRole.CUSTOMER])

add_item = retry_on_conflict()(CartService.add_item)


@cart_router.get("/",
    response_model=CartView,
    summary="Get cart",
    description="Current cart with informative prices and available stock"
)
def get_cart(
    current_account: User = Depends(customer_only),
    db: Session = Depends(get_db)
):
    try:
        return CartService.get_cart(db, current_account)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error loading cart: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@cart_router.post("/items",
    response_model=CartView,
    status_code=status.HTTP_201_CREATED,
    summary="Add to cart",
    description="Add a shop listing to the cart, merging quantities for the same listing"
)
def add_cart_item(
    data: CartItemAdd,
    current_account: User = Depends(customer_only),
    db: Session = Depends(get_db)
):
    """
    Add a listing to the cart.

    - **shop_inventory_id**: Listing to buy (required)
    - **quantity**: Whole, positive number of units
    """
    try:
        return add_item(db, current_account, data.shop_inventory_id, data.quantity)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error adding cart item: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@cart_router.patch("/items/{cart_item_id}",
    response_model=CartView,
    summary="Change quantity"
)
def update_cart_item(
    data: CartItemUpdate,
    cart_item_id: int = Path(..., description="Cart item ID", gt=0),
    current_account: User = Depends(customer_only),
    db: Session = Depends(get_db)
):
    try:
        return CartService.update_item(db, current_account, cart_item_id, data.quantity)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating cart item {cart_item_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@cart_router.delete("/items/{cart_item_id}",
    response_model=CartView,
    summary="Remove from cart"
)
def remove_cart_item(
    cart_item_id: int = Path(..., description="Cart item ID", gt=0),
    current_account: User = Depends(customer_only),
    db: Session = Depends(get_db)
):
    try:
        return CartService.remove_item(db, current_account, cart_item_id)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error removing cart item {cart_item_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
