# src/services/inventory.py
from decimal import Decimal, InvalidOperation
from typing import List, Dict, Iterable, Tuple
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import update, desc
import logging

from src.core.database import atomic
from src.core.exceptions import (
    NotFoundException, ValidationException, PermissionDeniedException,
    InsufficientStockException, InvariantViolationException
)
from src.models.users import User
from src.models.catalog import Product, Category
from src.models.inventory import ShopInventory
from src.schemas.inventory import ListingCreate
from src.services.seller_context import SellerContext, RETAIL_CONTEXT

logger = logging.getLogger(__name__)


# ================================
# INVENTORY STORE
# ================================
class InventoryStore:
    """
    Stock primitives shared by shop and warehouse ledgers.

    Every method runs inside the caller's transaction: it flushes but
    never commits, so a failure later in the same unit of work rolls the
    stock change back with everything else.
    """

    @staticmethod
    def normalize_quantity(quantity) -> Decimal:
        """Quantities are positive whole units."""
        try:
            value = Decimal(str(quantity))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationException(f"Invalid quantity: {quantity}")
        if not value.is_finite() or value <= Decimal("0"):
            raise ValidationException("Quantity must be positive")
        if value != value.to_integral_value():
            raise ValidationException("Quantity must be a whole number")
        return value

    @staticmethod
    def lock(db: Session, model, inventory_ids: Iterable[int]) -> Dict[int, object]:
        """
        Lock the given rows for the rest of the transaction and return them
        freshly loaded. Rows are locked in ascending id order so two
        settlements touching the same listings cannot deadlock.
        """
        ids = sorted(set(inventory_ids))
        rows = db.query(model).filter(
            model.id.in_(ids)
        ).order_by(model.id).with_for_update().populate_existing().all()

        found = {row.id: row for row in rows}
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundException(f"{model.__tablename__} rows not found: {missing}")
        return found

    @staticmethod
    def decrement(db: Session, model, inventory_id: int, quantity) -> object:
        """
        Conditionally take `quantity` off the row. The sufficiency check and
        the write are one statement; zero affected rows means the stock was
        not there.
        """
        quantity = InventoryStore.normalize_quantity(quantity)

        result = db.execute(
            update(model)
            .where(model.id == inventory_id, model.stock_quantity >= quantity)
            .values(stock_quantity=model.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )

        row = db.get(model, inventory_id, populate_existing=True)
        if result.rowcount == 0:
            if row is None:
                raise NotFoundException(f"{model.__tablename__} row {inventory_id} not found")
            raise InsufficientStockException(
                f"Insufficient stock for {model.__tablename__} item {inventory_id}. "
                f"Available: {row.stock_quantity}, Required: {quantity}",
                inventory_id=inventory_id
            )

        if row.stock_quantity < Decimal("0"):
            raise InvariantViolationException(
                f"Stock of {model.__tablename__} item {inventory_id} would become negative"
            )

        logger.debug(f"Stock decreased: {quantity} on {model.__tablename__} {inventory_id}")
        return row

    @staticmethod
    def increment(db: Session, model, inventory_id: int, quantity) -> object:
        """Put `quantity` back on the row. No upper bound."""
        quantity = InventoryStore.normalize_quantity(quantity)

        result = db.execute(
            update(model)
            .where(model.id == inventory_id)
            .values(stock_quantity=model.stock_quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundException(f"{model.__tablename__} row {inventory_id} not found")

        row = db.get(model, inventory_id, populate_existing=True)
        logger.debug(f"Stock increased: {quantity} on {model.__tablename__} {inventory_id}")
        return row


# ================================
# INVENTORY SERVICE
# ================================
class InventoryService:

    # ================================
    # LISTING MANAGEMENT
    # ================================

    @staticmethod
    def create_product_listing(db: Session, seller: User, data: ListingCreate):
        """Create a catalogue product and the seller's own stock row for it"""
        ctx = SellerContext.for_user(seller)

        with atomic(db):
            owner = ctx.owner_lookup(db, seller)

            if data.category_id is not None:
                if not db.get(Category, data.category_id):
                    raise NotFoundException(f"Category {data.category_id} not found")

            product = Product(
                name=data.name,
                description=data.description,
                category_id=data.category_id,
                image_urls=list(data.image_urls),
                creator_id=seller.id,
            )
            db.add(product)
            db.flush()

            fields = {
                ctx.inventory_owner_field: owner.id,
                "product_id": product.id,
                "stock_quantity": data.stock_quantity,
                "price": data.price,
            }
            if ctx is RETAIL_CONTEXT:
                fields["is_proxy_item"] = False

            listing = ctx.inventory_model(**fields)
            db.add(listing)
            db.flush()
            listing_id = listing.id

        logger.info(f"Listing created: {ctx.inventory_model.__tablename__} {listing_id} for {ctx.owner_label} {owner.id}")
        return db.get(ctx.inventory_model, listing_id)

    @staticmethod
    def restock(db: Session, seller: User, inventory_id: int, quantity) -> object:
        """Manual restock of one of the seller's own rows"""
        ctx = SellerContext.for_user(seller)

        with atomic(db):
            listing = db.get(ctx.inventory_model, inventory_id)
            if not listing:
                raise NotFoundException(f"Inventory item {inventory_id} not found")
            if not ctx.owns_listing(db, seller, listing):
                raise PermissionDeniedException(f"Inventory item {inventory_id} belongs to another {ctx.owner_label}")

            listing = InventoryStore.increment(db, ctx.inventory_model, inventory_id, quantity)

        logger.info(f"Restocked {ctx.inventory_model.__tablename__} {inventory_id} by {quantity}")
        db.refresh(listing)
        return listing

    @staticmethod
    def get_listing(db: Session, shop_inventory_id: int) -> ShopInventory:
        """Get a customer-facing listing with its product"""
        listing = db.query(ShopInventory).options(
            joinedload(ShopInventory.product),
            joinedload(ShopInventory.shop)
        ).filter(
            ShopInventory.id == shop_inventory_id
        ).first()

        if not listing:
            raise NotFoundException(f"Listing {shop_inventory_id} not found")

        return listing

    @staticmethod
    def list_seller_inventory(
        db: Session,
        seller: User,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[object], int]:
        """List the stock rows of the seller's shop or warehouse"""
        ctx = SellerContext.for_user(seller)
        owner = ctx.owner_lookup(db, seller)
        model = ctx.inventory_model

        query = db.query(model).options(
            joinedload(model.product)
        ).filter(
            getattr(model, ctx.inventory_owner_field) == owner.id
        )

        total = query.count()
        items = query.order_by(desc(model.id)).offset(skip).limit(limit).all()

        return items, total
