# src/routes/inventory.py
from fastapi import APIRouter, Depends, Query, HTTPException, status, Path
from sqlalchemy.orm import Session
from typing import Union
import logging

from src.core.database import get_db
from src.core.auth_dependencies import require_role
from src.core.exceptions import CommerceException
from src.models.users import User, UserRole
from src.models.inventory import ShopInventory
from src.schemas.inventory import (
    ListingCreate, RestockRequest, ShopInventoryOut, WarehouseInventoryOut, InventoryListOut
)
from src.services.inventory import InventoryService

logger = logging.getLogger(__name__)

inventory_router = APIRouter(prefix="/inventory", tags=["Inventory"])

seller_only = require_role([UserRole.RETAILER, UserRole.WHOLESALER])

ListingOut = Union[ShopInventoryOut, WarehouseInventoryOut]


def _listing_out(listing) -> ListingOut:
    if isinstance(listing, ShopInventory):
        return ShopInventoryOut.model_validate(listing)
    return WarehouseInventoryOut.model_validate(listing)


# ================================
# SELLER INVENTORY ROUTES
# ================================

@inventory_router.post("/listings",
    response_model=ListingOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create listing",
    description="Create a product with its stock row in the seller's shop or warehouse"
)
def create_listing(
    data: ListingCreate,
    current_account: User = Depends(seller_only),
    db: Session = Depends(get_db)
):
    """
    Create a product listing.

    - **name**: Product name (required)
    - **price**: Unit price, must be positive
    - **stock_quantity**: Opening stock (default: 0)
    """
    try:
        return _listing_out(InventoryService.create_product_listing(db, current_account, data))
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating listing for user {current_account.id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.get("/",
    response_model=InventoryListOut,
    summary="List own inventory"
)
def list_inventory(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_account: User = Depends(seller_only),
    db: Session = Depends(get_db)
):
    try:
        items, total = InventoryService.list_seller_inventory(db, current_account, skip, limit)
        if current_account.role == UserRole.RETAILER:
            return InventoryListOut(total=total, shop_items=[_listing_out(i) for i in items])
        return InventoryListOut(total=total, warehouse_items=[_listing_out(i) for i in items])
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.post("/{inventory_id}/restock",
    response_model=ListingOut,
    summary="Restock",
    description="Add units to one of the seller's own stock rows"
)
def restock(
    data: RestockRequest,
    inventory_id: int = Path(..., description="Inventory row ID", gt=0),
    current_account: User = Depends(seller_only),
    db: Session = Depends(get_db)
):
    try:
        return _listing_out(InventoryService.restock(db, current_account, inventory_id, data.quantity))
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error restocking {inventory_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# ================================
# PUBLIC LISTING ROUTES
# ================================

@inventory_router.get("/listings/{shop_inventory_id}",
    response_model=ShopInventoryOut,
    summary="Get listing"
)
def get_listing(
    shop_inventory_id: int = Path(..., description="Shop listing ID", gt=0),
    db: Session = Depends(get_db)
):
    try:
        return InventoryService.get_listing(db, shop_inventory_id)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
