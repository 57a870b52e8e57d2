"""Payment gateway port (abstract interface).

Defines the contract a payment gateway adapter must implement. Order
placement only proceeds when the gateway authorizes the frozen price
breakdown of the order.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from pricing.engine import PriceBreakdown


class AuthorizationStatus(Enum):
    AUTHORIZED = "Authorized"
    DECLINED = "Declined"


@dataclass(frozen=True)
class AuthorizationResult:
    """Result of a payment authorization attempt."""

    status: AuthorizationStatus
    authorization_id: str | None = None
    decline_reason: str | None = None

    @property
    def authorized(self) -> bool:
        return self.status == AuthorizationStatus.AUTHORIZED


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def authorize(
        self,
        payment_method: str,
        breakdown: PriceBreakdown,
        idempotency_key: str,
    ) -> AuthorizationResult:
        """Authorize ``breakdown.total`` against the referenced payment method."""
        ...
