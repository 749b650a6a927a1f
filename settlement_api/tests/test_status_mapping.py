"""Gateway status vocabulary to internal payment status."""

import pytest

from payments.constants import PaymentStatus
from payments.status import GATEWAY_STATUS_MAP, map_gateway_status
from settlement.exceptions import InfrastructureError, UnknownGatewayStatusError


class TestMapGatewayStatus:

    @pytest.mark.parametrize("gateway_status, expected", [
        ('pending', PaymentStatus.PENDING),
        ('authorized', PaymentStatus.PROCESSING),
        ('in_process', PaymentStatus.PROCESSING),
        ('in_mediation', PaymentStatus.PROCESSING),
        ('approved', PaymentStatus.COMPLETED),
        ('rejected', PaymentStatus.FAILED),
        ('cancelled', PaymentStatus.FAILED),
        ('refunded', PaymentStatus.FAILED),
        ('charged_back', PaymentStatus.FAILED),
    ])
    def test_known_statuses(self, gateway_status, expected):
        assert map_gateway_status(gateway_status) == expected

    def test_table_covers_exactly_the_documented_vocabulary(self):
        assert len(GATEWAY_STATUS_MAP) == 9

    @pytest.mark.parametrize("gateway_status", ['expired', 'APPROVED', '', None, 'paid'])
    def test_unknown_status_fails_closed(self, gateway_status):
        """An unmapped status must never read as pending"""
        with pytest.raises(UnknownGatewayStatusError) as excinfo:
            map_gateway_status(gateway_status)

        assert excinfo.value.gateway_status == gateway_status
        assert isinstance(excinfo.value, InfrastructureError)
