# src/models/users.py
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Enum as SAEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from src.core.database import Base
import enum


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    RETAILER = "retailer"
    WHOLESALER = "wholesaler"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(50), unique=True)
    first_name = Column(String(120))
    last_name = Column(String(120))
    role = Column(
        SAEnum(UserRole, name="user_role_enum", create_constraint=True),
        nullable=False,
        default=UserRole.CUSTOMER
    )
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    addresses = relationship(
        "Address",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    cart = relationship("Cart", back_populates="customer", uselist=False)
    shop = relationship("Shop", back_populates="owner", uselist=False)
    warehouse = relationship("Warehouse", back_populates="owner", uselist=False)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.email

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
