# src/schemas/ecommerce.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from src.models.ecommerce import (
    OrderType, OrderStatus, OrderItemStatus, PaymentMethod, PaymentStatus
)


def _whole_units(v: Decimal) -> Decimal:
    if v != v.to_integral_value():
        raise ValueError("Quantity must be a whole number")
    return v


# --- CART ITEM ---
class CartItemAdd(BaseModel):
    shop_inventory_id: int
    quantity: Decimal = Field(..., gt=0)

    @field_validator("quantity")
    @classmethod
    def quantity_whole_units(cls, v: Decimal) -> Decimal:
        return _whole_units(v)


class CartItemUpdate(BaseModel):
    quantity: Decimal = Field(..., gt=0)

    @field_validator("quantity")
    @classmethod
    def quantity_whole_units(cls, v: Decimal) -> Decimal:
        return _whole_units(v)


class CartLineOut(BaseModel):
    id: int
    shop_inventory_id: int
    shop_id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal
    available_stock: Decimal


# --- CART ---
class CartView(BaseModel):
    """Read-only snapshot of a cart; prices are informative, never stored."""
    cart_id: Optional[int] = None
    customer_id: int
    items: List[CartLineOut] = []
    total: Decimal = Decimal("0")


# --- PAYMENT ---
class PaymentAssertion(BaseModel):
    gateway_order_id: str = Field(..., min_length=1)
    gateway_payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class PaymentOut(BaseModel):
    id: int
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# --- ORDER REQUESTS ---
class OrderCreate(BaseModel):
    delivery_address_id: int
    payment_method: PaymentMethod
    payment: Optional[PaymentAssertion] = None


class WholesaleOrderCreate(BaseModel):
    warehouse_inventory_id: int
    quantity: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod
    payment: Optional[PaymentAssertion] = None
    delivery_address_id: Optional[int] = None

    # proxy purchase: list the bought stock in the buyer's shop
    proxy: bool = False
    selling_price: Optional[Decimal] = Field(None, gt=0)

    @field_validator("quantity")
    @classmethod
    def quantity_whole_units(cls, v: Decimal) -> Decimal:
        return _whole_units(v)


# --- ORDER ITEM ---
class OrderItemOut(BaseModel):
    id: int
    shop_inventory_id: Optional[int] = None
    warehouse_inventory_id: Optional[int] = None
    source_warehouse_inventory_id: Optional[int] = None
    quantity: Decimal
    price_at_purchase: Decimal
    status: OrderItemStatus

    model_config = ConfigDict(from_attributes=True)


# --- ORDER ---
class OrderOut(BaseModel):
    id: int
    customer_id: int
    order_type: OrderType
    shop_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    status: OrderStatus
    total_amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    delivery_address_id: Optional[int] = None
    is_proxy_order: bool
    offline_order_delivery_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut] = []
    payment: Optional[PaymentOut] = None

    model_config = ConfigDict(from_attributes=True)


class SettlementResult(BaseModel):
    order_ids: List[int]


class WholesaleOrderResult(BaseModel):
    order_id: int
    shop_inventory_id: Optional[int] = None


# --- STATUS UPDATES ---
class OrderItemStatusUpdate(BaseModel):
    status: OrderItemStatus


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus = PaymentStatus.COMPLETED


class ReturnRequestCreate(BaseModel):
    order_item_id: int


class ReturnRequestOut(BaseModel):
    order_item_id: int
    order_id: int
    customer_id: int
    quantity: Decimal
    price_at_purchase: Decimal
    status: OrderItemStatus
