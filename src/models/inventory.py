from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, ForeignKey, DateTime,
    CheckConstraint, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from src.core.database import Base


class Shop(Base):
    __tablename__ = "shops"
    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="shop")
    address = relationship("Address")
    inventory_items = relationship("ShopInventory", back_populates="shop")


class Warehouse(Base):
    __tablename__ = "warehouses"
    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    name = Column(String(255))
    address_id = Column(Integer, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="warehouse")
    address = relationship("Address")
    inventory_items = relationship("WarehouseInventory", back_populates="warehouse")


class WarehouseInventory(Base):
    __tablename__ = "warehouse_inventory"
    id = Column(Integer, primary_key=True)
    warehouse_id = Column(
        Integer,
        ForeignKey("warehouses.id"),
        nullable=False
    )
    product_id = Column(
        Integer,
        ForeignKey("products.id"),
        nullable=False
    )
    stock_quantity = Column(Numeric(12, 2), nullable=False, default=0)
    price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("warehouse_id", "product_id", name="uq_warehouse_inventory_product"),
        CheckConstraint("stock_quantity >= 0", name="ck_warehouse_inventory_stock_non_negative"),
        CheckConstraint("price > 0", name="ck_warehouse_inventory_price_positive"),
    )

    warehouse = relationship("Warehouse", back_populates="inventory_items")
    product = relationship("Product", back_populates="warehouse_listings")
    proxy_listings = relationship("ShopInventory", back_populates="source")


class ShopInventory(Base):
    __tablename__ = "shop_inventory"
    id = Column(Integer, primary_key=True)
    shop_id = Column(
        Integer,
        ForeignKey("shops.id"),
        nullable=False
    )
    product_id = Column(
        Integer,
        ForeignKey("products.id"),
        nullable=False
    )
    stock_quantity = Column(Numeric(12, 2), nullable=False, default=0)
    price = Column(Numeric(12, 2), nullable=False)
    is_proxy_item = Column(Boolean, nullable=False, default=False)
    warehouse_inventory_id = Column(
        Integer,
        ForeignKey("warehouse_inventory.id"),
        nullable=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("shop_id", "product_id", name="uq_shop_inventory_product"),
        CheckConstraint("stock_quantity >= 0", name="ck_shop_inventory_stock_non_negative"),
        CheckConstraint("price > 0", name="ck_shop_inventory_price_positive"),
    )

    shop = relationship("Shop", back_populates="inventory_items")
    product = relationship("Product", back_populates="shop_listings")
    source = relationship("WarehouseInventory", back_populates="proxy_listings")
