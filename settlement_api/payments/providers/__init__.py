from .base import BasePaymentGateway, GatewayPayment, GatewayPaymentStatus
from .mock import MockPaymentGateway
from .mercadopago import MercadoPagoGateway


def get_payment_gateway(gateway_name: str, **kwargs) -> BasePaymentGateway:
    """
    Factory function to get payment gateway instances.

    Args:
        gateway_name: Name of the payment gateway
        **kwargs: Gateway configuration

    Returns:
        BasePaymentGateway: Payment gateway instance
    """
    gateways = {
        'mock': MockPaymentGateway,
        'mercadopago': MercadoPagoGateway,
    }

    if gateway_name not in gateways:
        raise ValueError(f"Unknown payment gateway: {gateway_name}")

    return gateways[gateway_name](**kwargs)
