from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Enum, Numeric, Boolean,
    CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.core.database import Base
import enum


class OrderType(str, enum.Enum):
    RETAIL = "retail"
    WHOLESALE = "wholesale"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderItemStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    TO_RETURN = "to_return"
    RETURNED = "returned"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    UPI = "upi"
    CASH_ON_DELIVERY = "cash_on_delivery"

    @property
    def requires_gateway(self) -> bool:
        return self in (PaymentMethod.CREDIT_CARD, PaymentMethod.UPI)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)

    customer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customer = relationship("User", back_populates="cart")

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id"
    )


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)

    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    shop_inventory_id = Column(Integer, ForeignKey("shop_inventory.id"), nullable=False)

    quantity = Column(Numeric(12, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("cart_id", "shop_inventory_id", name="uq_cart_item_listing"),
        CheckConstraint("quantity > 0", name="ck_cart_item_quantity_positive"),
    )

    cart = relationship("Cart", back_populates="items")
    shop_inventory = relationship("ShopInventory")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)

    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_type = Column(Enum(OrderType, name="order_type_enum"), nullable=False)

    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True, index=True)

    # cache of derive_order_status(items), rewritten on every item change
    status = Column(Enum(OrderStatus, name="order_status_enum"), nullable=False, default=OrderStatus.PENDING)

    total_amount = Column(Numeric(12, 2), nullable=False)

    payment_method = Column(Enum(PaymentMethod, name="payment_method_enum"), nullable=False)
    payment_status = Column(Enum(PaymentStatus, name="payment_status_enum"), nullable=False, default=PaymentStatus.PENDING)

    delivery_address_id = Column(Integer, ForeignKey("addresses.id", ondelete="RESTRICT"), nullable=True)

    is_proxy_order = Column(Boolean, nullable=False, default=False)
    offline_order_delivery_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "(shop_id IS NOT NULL AND warehouse_id IS NULL) OR "
            "(shop_id IS NULL AND warehouse_id IS NOT NULL)",
            name="ck_order_shop_xor_warehouse",
        ),
        CheckConstraint("total_amount >= 0", name="ck_order_total_non_negative"),
    )

    customer = relationship("User")
    shop = relationship("Shop")
    warehouse = relationship("Warehouse")
    delivery_address = relationship("Address")

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id"
    )
    payment = relationship("Payment", back_populates="order", uselist=False)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)

    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    shop_inventory_id = Column(Integer, ForeignKey("shop_inventory.id"), nullable=True)
    warehouse_inventory_id = Column(Integer, ForeignKey("warehouse_inventory.id"), nullable=True)

    # warehouse row a proxied shop listing was sourced from at purchase time
    source_warehouse_inventory_id = Column(Integer, ForeignKey("warehouse_inventory.id"), nullable=True)

    quantity = Column(Numeric(12, 2), nullable=False)
    price_at_purchase = Column(Numeric(12, 2), nullable=False)

    status = Column(Enum(OrderItemStatus, name="order_item_status_enum"), nullable=False, default=OrderItemStatus.PENDING)

    __table_args__ = (
        CheckConstraint(
            "(shop_inventory_id IS NOT NULL AND warehouse_inventory_id IS NULL) OR "
            "(shop_inventory_id IS NULL AND warehouse_inventory_id IS NOT NULL)",
            name="ck_order_item_listing_xor",
        ),
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )

    @property
    def line_total(self):
        return self.price_at_purchase * self.quantity

    order = relationship("Order", back_populates="items")
    shop_inventory = relationship("ShopInventory", foreign_keys=[shop_inventory_id])
    warehouse_inventory = relationship("WarehouseInventory", foreign_keys=[warehouse_inventory_id])


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)

    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod, name="payment_method_enum"), nullable=False)
    status = Column(Enum(PaymentStatus, name="payment_status_enum"), nullable=False, default=PaymentStatus.PENDING)
    transaction_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="payment")
