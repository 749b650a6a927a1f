from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple, Optional


class GatewayPayment(NamedTuple):
    """Payment instructions returned by a gateway when a charge is created."""
    external_id: str
    qr_payload: str  # copy-and-paste payment code
    qr_image_base64: Optional[str]
    gateway_status: str
    expires_at: Optional[datetime] = None


class GatewayPaymentStatus(NamedTuple):
    gateway_status: str
    paid_at: Optional[datetime] = None


class BasePaymentGateway(ABC):
    """
    Abstract base class for all payment gateways.
    Defines the common interface the payment reconciler relies on.
    Gateways only talk to the provider; they never read or write local records.
    """

    name = None

    def __init__(self, **kwargs):
        """Initialize the payment gateway with configuration."""
        self.config = kwargs

    @abstractmethod
    def create_payment(self, amount: Decimal, payer: dict, idempotency_key: str, **kwargs) -> GatewayPayment:
        """
        Create an instant payment charge.

        Args:
            amount: Amount to charge (as Decimal)
            payer: Dict with 'email' and optionally 'document'
            idempotency_key: Unique key for this creation attempt, sent to the
                provider so a retried request does not create a second charge
            **kwargs: Additional parameters specific to the gateway
                (description, transaction_id)

        Returns:
            GatewayPayment

        Raises:
            GatewayError: if the provider cannot be reached or rejects the request
        """
        pass

    @abstractmethod
    def get_payment(self, external_id: str) -> GatewayPaymentStatus:
        """
        Fetch the current state of a payment.

        Args:
            external_id: Payment ID assigned by the gateway

        Returns:
            GatewayPaymentStatus carrying the raw gateway status string

        Raises:
            GatewayError: if the provider cannot be reached or the payment is unknown
        """
        pass

    @abstractmethod
    def cancel_payment(self, external_id: str) -> GatewayPaymentStatus:
        """
        Cancel a payment that has not been paid, so its code can no longer be used.

        Args:
            external_id: Payment ID assigned by the gateway

        Returns:
            GatewayPaymentStatus after the cancellation

        Raises:
            GatewayError: if the provider refuses, e.g. because the payment
                was already approved
        """
        pass

    def validate_webhook(self, data_id, signature, request_id=None):
        """
        Validate a webhook signature (optional implementation).

        Args:
            data_id: Payment ID carried by the notification
            signature: Value of the signature header
            request_id: Value of the request id header

        Returns:
            bool: True if the webhook is authentic
        """
        return True  # Override in specific gateways if needed
