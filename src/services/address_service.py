from sqlalchemy.orm import Session
from typing import Optional
import logging

from src.core.database import atomic
from src.models.locations import Address
from src.schemas.location import AddressCreate

logger = logging.getLogger(__name__)


# -------------------------------
# ADDRESS SERVICES
# -------------------------------
class AddressService:

    @staticmethod
    def is_owned_address(db: Session, address_id: Optional[int], user_id: int) -> bool:
        if address_id is None:
            return False
        return db.query(Address.id).filter(
            Address.id == address_id,
            Address.user_id == user_id
        ).first() is not None

    @staticmethod
    def create(db: Session, user_id: int, data: AddressCreate) -> Address:
        payload = data.model_dump(exclude_unset=True)

        with atomic(db):
            # one primary address per user
            if payload.get("is_primary"):
                db.query(Address).filter(
                    Address.user_id == user_id,
                    Address.is_primary.is_(True)
                ).update({"is_primary": False})

            address = Address(user_id=user_id, **payload)
            db.add(address)
            db.flush()
            address_id = address.id

        logger.info(f"Address {address_id} created for user {user_id}")
        return db.get(Address, address_id)

    @staticmethod
    def list(db: Session, user_id: int):
        return db.query(Address).filter(
            Address.user_id == user_id
        ).order_by(Address.is_primary.desc(), Address.id).all()
