# src/services/cart_service.py
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy.orm import Session, joinedload
import logging

from src.core.database import atomic
from src.core.exceptions import NotFoundException, PermissionDeniedException
from src.models.users import User, UserRole
from src.models.ecommerce import Cart, CartItem
from src.models.inventory import ShopInventory
from src.schemas.ecommerce import CartView, CartLineOut
from src.services.inventory import InventoryStore

logger = logging.getLogger(__name__)


class CartService:

    # ================================
    # READ
    # ================================

    @staticmethod
    def load_cart(db: Session, customer_id: int) -> Optional[Cart]:
        """Cart with items joined to their listings and products"""
        return db.query(Cart).options(
            joinedload(Cart.items)
            .joinedload(CartItem.shop_inventory)
            .joinedload(ShopInventory.product)
        ).filter(
            Cart.customer_id == customer_id
        ).first()

    @staticmethod
    def get_cart(db: Session, customer: User) -> CartView:
        cart = CartService.load_cart(db, customer.id)
        if not cart:
            return CartView(customer_id=customer.id)

        lines = []
        total = Decimal("0")
        for item in cart.items:
            listing = item.shop_inventory
            line_total = listing.price * item.quantity
            total += line_total
            lines.append(CartLineOut(
                id=item.id,
                shop_inventory_id=listing.id,
                shop_id=listing.shop_id,
                product_id=listing.product_id,
                product_name=listing.product.name if listing.product else None,
                quantity=item.quantity,
                unit_price=listing.price,
                line_total=line_total,
                available_stock=listing.stock_quantity,
            ))

        return CartView(cart_id=cart.id, customer_id=customer.id, items=lines, total=total)

    @staticmethod
    def group_by_shop(items: List[CartItem]) -> Dict[int, List[CartItem]]:
        """Partition cart items by the shop selling them, keeping first-seen order."""
        groups: Dict[int, List[CartItem]] = OrderedDict()
        for item in items:
            groups.setdefault(item.shop_inventory.shop_id, []).append(item)
        return groups

    # ================================
    # WRITE
    # ================================

    @staticmethod
    def get_or_create_cart(db: Session, customer_id: int) -> Cart:
        """Flushes a new cart into the current transaction when none exists."""
        cart = db.query(Cart).filter(Cart.customer_id == customer_id).first()
        if not cart:
            cart = Cart(customer_id=customer_id)
            db.add(cart)
            db.flush()
        return cart

    @staticmethod
    def add_item(db: Session, customer: User, shop_inventory_id: int, quantity) -> CartView:
        """Add a listing to the cart, merging with an existing line"""
        if customer.role != UserRole.CUSTOMER:
            raise PermissionDeniedException("Only customers have carts")
        quantity = InventoryStore.normalize_quantity(quantity)

        with atomic(db, insert_race_tables=(Cart.__tablename__, CartItem.__tablename__)):
            if not db.get(ShopInventory, shop_inventory_id):
                raise NotFoundException(f"Listing {shop_inventory_id} not found")

            cart = CartService.get_or_create_cart(db, customer.id)
            line = db.query(CartItem).filter(
                CartItem.cart_id == cart.id,
                CartItem.shop_inventory_id == shop_inventory_id
            ).first()

            if line:
                line.quantity = line.quantity + quantity
            else:
                db.add(CartItem(
                    cart_id=cart.id,
                    shop_inventory_id=shop_inventory_id,
                    quantity=quantity
                ))

        logger.info(f"Cart of customer {customer.id}: +{quantity} of listing {shop_inventory_id}")
        return CartService.get_cart(db, customer)

    @staticmethod
    def update_item(db: Session, customer: User, cart_item_id: int, quantity) -> CartView:
        quantity = InventoryStore.normalize_quantity(quantity)

        with atomic(db):
            line = CartService._owned_line(db, customer, cart_item_id)
            line.quantity = quantity

        return CartService.get_cart(db, customer)

    @staticmethod
    def remove_item(db: Session, customer: User, cart_item_id: int) -> CartView:
        with atomic(db):
            line = CartService._owned_line(db, customer, cart_item_id)
            db.delete(line)

        logger.info(f"Cart item {cart_item_id} removed by customer {customer.id}")
        return CartService.get_cart(db, customer)

    @staticmethod
    def _owned_line(db: Session, customer: User, cart_item_id: int) -> CartItem:
        line = db.query(CartItem).join(Cart).filter(
            CartItem.id == cart_item_id,
            Cart.customer_id == customer.id
        ).first()
        if not line:
            raise NotFoundException(f"Cart item {cart_item_id} not found")
        return line
