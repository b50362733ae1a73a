# src/services/proxy_listing.py
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session
import logging

from src.core.exceptions import (
    NotFoundException, ValidationException, ProxyMergeConflictException
)
from src.models.inventory import ShopInventory, WarehouseInventory
from src.services.inventory import InventoryStore

logger = logging.getLogger(__name__)


class ProxyListingService:
    """
    Mirrors stock bought from a warehouse into the buyer's shop.

    Both methods run inside the wholesale transaction and never commit.
    """

    @staticmethod
    def find_listing(db: Session, shop_id: int, product_id: int) -> Optional[ShopInventory]:
        return db.query(ShopInventory).filter(
            ShopInventory.shop_id == shop_id,
            ShopInventory.product_id == product_id
        ).with_for_update().populate_existing().first()

    @staticmethod
    def create_or_merge(
        db: Session,
        shop_id: int,
        warehouse_inventory_id: int,
        quantity,
        selling_price: Optional[Decimal]
    ) -> ShopInventory:
        """
        Credit `quantity` to the shop's listing of the warehouse product.

        An existing proxy listing (or an empty independent one) is merged and
        re-pointed at this warehouse row. An independent listing that still
        holds its own stock is left alone and the purchase is refused.
        """
        quantity = InventoryStore.normalize_quantity(quantity)

        source = db.get(WarehouseInventory, warehouse_inventory_id)
        if not source:
            raise NotFoundException(f"Warehouse inventory {warehouse_inventory_id} not found")

        listing = ProxyListingService.find_listing(db, shop_id, source.product_id)

        if listing is None:
            if selling_price is None or Decimal(selling_price) <= Decimal("0"):
                raise ValidationException("A positive selling price is required for a new proxy listing")

            listing = ShopInventory(
                shop_id=shop_id,
                product_id=source.product_id,
                stock_quantity=quantity,
                price=selling_price,
                is_proxy_item=True,
                warehouse_inventory_id=source.id,
            )
            db.add(listing)
            db.flush()
            logger.info(f"Proxy listing {listing.id} created in shop {shop_id} from warehouse item {source.id}")
            return listing

        if not listing.is_proxy_item and listing.stock_quantity > Decimal("0"):
            raise ProxyMergeConflictException(
                f"Shop listing {listing.id} holds {listing.stock_quantity} units of independent stock"
            )

        # last source wins
        listing.is_proxy_item = True
        listing.warehouse_inventory_id = source.id
        if selling_price is not None:
            listing.price = selling_price
        db.flush()

        listing = InventoryStore.increment(db, ShopInventory, listing.id, quantity)
        logger.info(f"Proxy listing {listing.id} merged: +{quantity} from warehouse item {source.id}")
        return listing

    @staticmethod
    def release(db: Session, shop_id: int, warehouse_inventory_id: int, quantity) -> ShopInventory:
        """
        Take back stock credited by a proxy purchase that is being returned.
        Fails with InsufficientStock when the shop has already sold it on.
        """
        source = db.get(WarehouseInventory, warehouse_inventory_id)
        if not source:
            raise NotFoundException(f"Warehouse inventory {warehouse_inventory_id} not found")

        listing = ProxyListingService.find_listing(db, shop_id, source.product_id)
        if listing is None:
            raise NotFoundException(
                f"Shop {shop_id} has no listing for product {source.product_id}"
            )

        listing = InventoryStore.decrement(db, ShopInventory, listing.id, quantity)
        logger.info(f"Proxy listing {listing.id} released {quantity} back to warehouse item {source.id}")
        return listing
