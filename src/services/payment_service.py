# src/services/payment_service.py
import logging
from typing import Optional

from src.core.config import settings
from src.core.security import SecurityUtils
from src.schemas.ecommerce import PaymentAssertion

logger = logging.getLogger(__name__)


class PaymentOracle:
    """Answers whether a client-side payment assertion is genuine."""

    def verify(self, assertion: Optional[PaymentAssertion]) -> bool:
        raise NotImplementedError


class GatewaySignatureOracle(PaymentOracle):
    """
    Checks the gateway's HMAC-SHA256 signature over
    "<gateway_order_id>|<gateway_payment_id>" with the shared key secret.
    """

    def __init__(self, key_secret: str = None):
        self.key_secret = key_secret if key_secret is not None else settings.PAYMENT_GATEWAY_KEY_SECRET

    @staticmethod
    def signed_message(gateway_order_id: str, gateway_payment_id: str) -> str:
        return f"{gateway_order_id}|{gateway_payment_id}"

    def expected_signature(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        return SecurityUtils.generate_hmac_signature(
            self.key_secret,
            self.signed_message(gateway_order_id, gateway_payment_id)
        )

    def verify(self, assertion: Optional[PaymentAssertion]) -> bool:
        if assertion is None:
            return False
        if not self.key_secret:
            logger.error("Payment gateway secret is not configured, rejecting assertion")
            return False

        ok = SecurityUtils.verify_hmac_signature(
            self.key_secret,
            self.signed_message(assertion.gateway_order_id, assertion.gateway_payment_id),
            assertion.signature
        )
        if not ok:
            logger.warning(f"Payment signature mismatch for gateway order {assertion.gateway_order_id}")
        return ok


def get_payment_oracle() -> PaymentOracle:
    return GatewaySignatureOracle()
