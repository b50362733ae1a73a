from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, DateTime, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.core.database import Base


# ---------------- CATEGORY ----------------

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category {self.name}>"


# ---------------- PRODUCT ----------------

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)

    name = Column(String(255), nullable=False)
    description = Column(Text)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    image_urls = Column(JSON, default=list)

    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    category = relationship("Category", back_populates="products")
    creator = relationship("User")

    shop_listings = relationship("ShopInventory", back_populates="product")
    warehouse_listings = relationship("WarehouseInventory", back_populates="product")

    def __repr__(self):
        return f"<Product {self.name}>"
