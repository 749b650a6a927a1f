from settlement.exceptions import UnknownGatewayStatusError
from .constants import PaymentStatus

# Gateway vocabulary -> internal status. Anything not listed is rejected.
GATEWAY_STATUS_MAP = {
    'pending': PaymentStatus.PENDING,
    'authorized': PaymentStatus.PROCESSING,
    'in_process': PaymentStatus.PROCESSING,
    'in_mediation': PaymentStatus.PROCESSING,
    'approved': PaymentStatus.COMPLETED,
    'rejected': PaymentStatus.FAILED,
    'cancelled': PaymentStatus.FAILED,
    'refunded': PaymentStatus.FAILED,
    'charged_back': PaymentStatus.FAILED,
}


def map_gateway_status(gateway_status):
    """
    Translate a gateway payment status into a PaymentStatus.

    Raises:
        UnknownGatewayStatusError: for statuses outside the table, so a new
            gateway status never silently reads as pending.
    """
    try:
        return GATEWAY_STATUS_MAP[gateway_status]
    except (KeyError, TypeError):
        raise UnknownGatewayStatusError(gateway_status)
