"""Payment gateway port and adapters.

- FakeGateway for development and testing
- Real gateways implement PaymentGateway and are injected at composition time
"""

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import AuthorizationResult, AuthorizationStatus, PaymentGateway

__all__ = ["AuthorizationResult", "AuthorizationStatus", "FakeGateway", "PaymentGateway"]
