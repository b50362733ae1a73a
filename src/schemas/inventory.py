# src/schemas/inventory.py
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


# -------------------------------
# PRODUCT SCHEMAS
# -------------------------------
class ProductOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    image_urls: List[str] = []
    creator_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------------------
# LISTING SCHEMAS
# -------------------------------
class ListingCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    category_id: Optional[int] = None
    image_urls: List[str] = []
    price: Decimal = Field(..., gt=0, decimal_places=2)
    stock_quantity: Decimal = Field(Decimal("0"), ge=0)


class ShopInventoryOut(BaseModel):
    id: int
    shop_id: int
    product_id: int
    stock_quantity: Decimal
    price: Decimal
    is_proxy_item: bool
    warehouse_inventory_id: Optional[int] = None
    product: Optional[ProductOut] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WarehouseInventoryOut(BaseModel):
    id: int
    warehouse_id: int
    product_id: int
    stock_quantity: Decimal
    price: Decimal
    product: Optional[ProductOut] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class InventoryListOut(BaseModel):
    total: int
    shop_items: List[ShopInventoryOut] = []
    warehouse_items: List[WarehouseInventoryOut] = []


# -------------------------------
# STOCK OPERATION SCHEMAS
# -------------------------------
class RestockRequest(BaseModel):
    quantity: Decimal = Field(..., gt=0)
