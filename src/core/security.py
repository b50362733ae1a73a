# src/core/security.py
import hmac
import hashlib
from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Optional
import uuid
from jose import JWTError, jwt
import logging
from src.core.config import settings


logger = logging.getLogger(__name__)


# Access JWT secret and expiry
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM

ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES


class SecurityUtils:

    # ---------------- JWT ----------------
    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> tuple[str, datetime, str]:
        """Mint an access token in the format the identity service issues."""
        to_encode = data.copy()
        jti = str(uuid.uuid4())
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc), "jti": jti, "type": "access"})
        token = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
        return token, expire, jti

    @staticmethod
    def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
            if payload.get("type") != "access": return None
            return payload
        except JWTError as e:
            logger.debug(f"Rejected access token: {str(e)}")
            return None

    # ---------------- HMAC ----------------
    @staticmethod
    def generate_hmac_signature(secret: str, message: str) -> str:
        return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()

    @staticmethod
    def verify_hmac_signature(secret: str, message: str, signature: str) -> bool:
        return hmac.compare_digest(SecurityUtils.generate_hmac_signature(secret, message), signature)
