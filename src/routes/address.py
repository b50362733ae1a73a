from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from src.core.database import get_db
from src.core.auth_dependencies import get_current_account
from src.core.exceptions import CommerceException
from src.models.users import User
from src.schemas.location import AddressCreate, AddressOut
from src.services.address_service import AddressService

address_router = APIRouter(prefix="/addresses", tags=["Address"])


# -------------------------------
# ADDRESS ENDPOINTS
# -------------------------------
@address_router.post("/", response_model=AddressOut, status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreate,
    current_account: User = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Create a delivery address for the current user. A primary address replaces the previous one.
    """
    try:
        return AddressService.create(db, current_account.id, payload)
    except CommerceException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@address_router.get("/", response_model=list[AddressOut])
def list_addresses(
    current_account: User = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    return AddressService.list(db, current_account.id)
