# src/services/seller_context.py
from sqlalchemy.orm import Session

from src.core.exceptions import NotFoundException, PermissionDeniedException
from src.models.users import User, UserRole
from src.models.inventory import Shop, Warehouse, ShopInventory, WarehouseInventory
from src.models.ecommerce import Order, OrderType


class SellerContext:
    """
    Everything a seller-facing operation needs to know about the seller's
    role, picked once per request so retail and wholesale code paths share
    one implementation.

    - owner_model: Shop or Warehouse
    - inventory_model: ShopInventory or WarehouseInventory
    - inventory_owner_field: column on the inventory row pointing at the owner
    - order_link_field: column on Order pointing at the owner
    """

    def __init__(
        self,
        role: UserRole,
        owner_model,
        inventory_model,
        inventory_owner_field: str,
        order_link_field: str,
    ):
        self.role = role
        self.owner_model = owner_model
        self.inventory_model = inventory_model
        self.inventory_owner_field = inventory_owner_field
        self.order_link_field = order_link_field

    def __repr__(self):
        return f"<SellerContext {self.role.value}>"

    @property
    def owner_label(self) -> str:
        return self.owner_model.__tablename__[:-1]

    def owner_lookup(self, db: Session, user: User):
        """Return the shop/warehouse operated by the user."""
        owner = db.query(self.owner_model).filter(
            self.owner_model.owner_id == user.id
        ).first()
        if not owner:
            raise NotFoundException(f"{self.owner_label.capitalize()} not found for user {user.id}")
        return owner

    def owner_id_of_listing(self, listing) -> int:
        return getattr(listing, self.inventory_owner_field)

    def owner_id_of_order(self, order: Order) -> int:
        return getattr(order, self.order_link_field)

    def owns_order(self, db: Session, user: User, order: Order) -> bool:
        if user.role != self.role:
            return False
        owner = db.query(self.owner_model.id).filter(
            self.owner_model.owner_id == user.id
        ).scalar()
        return owner is not None and owner == self.owner_id_of_order(order)

    def owns_listing(self, db: Session, user: User, listing) -> bool:
        owner = self.owner_lookup(db, user)
        return owner.id == self.owner_id_of_listing(listing)

    # ================================
    # SELECTION
    # ================================

    @staticmethod
    def for_user(user: User) -> "SellerContext":
        if user.role == UserRole.RETAILER:
            return RETAIL_CONTEXT
        if user.role == UserRole.WHOLESALER:
            return WHOLESALE_CONTEXT
        raise PermissionDeniedException("Only retailers and wholesalers can act as sellers")

    @staticmethod
    def for_order(order: Order) -> "SellerContext":
        if order.order_type == OrderType.WHOLESALE:
            return WHOLESALE_CONTEXT
        return RETAIL_CONTEXT


RETAIL_CONTEXT = SellerContext(
    role=UserRole.RETAILER,
    owner_model=Shop,
    inventory_model=ShopInventory,
    inventory_owner_field="shop_id",
    order_link_field="shop_id",
)

WHOLESALE_CONTEXT = SellerContext(
    role=UserRole.WHOLESALER,
    owner_model=Warehouse,
    inventory_model=WarehouseInventory,
    inventory_owner_field="warehouse_id",
    order_link_field="warehouse_id",
)
