"""Configurable fake payment gateway for development and testing.

Simulates a gateway without external calls. It can be configured at runtime
to authorize or decline, and keeps every call for assertions.
"""

from uuid import uuid4

from payments.gateway.port import AuthorizationResult, AuthorizationStatus, PaymentGateway
from pricing.engine import PriceBreakdown


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def authorize(
        self,
        payment_method: str,
        breakdown: PriceBreakdown,
        idempotency_key: str,
    ) -> AuthorizationResult:
        self.calls.append(
            {
                "method": "authorize",
                "payment_method": payment_method,
                "amount": breakdown.total,
                "currency": breakdown.currency,
                "idempotency_key": idempotency_key,
            }
        )

        if self.should_succeed:
            return AuthorizationResult(
                status=AuthorizationStatus.AUTHORIZED,
                authorization_id=f"fake_auth_{uuid4().hex[:12]}",
            )
        return AuthorizationResult(
            status=AuthorizationStatus.DECLINED,
            decline_reason=self.failure_reason,
        )
