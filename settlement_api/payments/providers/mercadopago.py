import hashlib
import hmac
import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from django.utils.dateparse import parse_datetime

from settlement.exceptions import GatewayError
from .base import BasePaymentGateway, GatewayPayment, GatewayPaymentStatus

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'https://api.mercadopago.com'
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 3


def _get_session_with_retry(max_retries, backoff_factor=0.5):
    """
    Create a requests session that retries transient network and server errors.
    POST is only retried because every POST carries an idempotency key.
    PUT only ever sets a payment to cancelled, which is safe to repeat.
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[408, 429, 500, 502, 503, 504],
        allowed_methods=["GET", "POST", "PUT"],
        raise_on_status=False
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


class MercadoPagoGateway(BasePaymentGateway):
    """Instant (PIX) payments through the Mercado Pago payments API."""

    name = 'mercadopago'

    def __init__(self, access_token, api_url=DEFAULT_API_URL, webhook_secret=None,
                 notification_url=None, timeout=DEFAULT_TIMEOUT, max_retries=DEFAULT_MAX_RETRIES,
                 session=None, **kwargs):
        super().__init__(**kwargs)
        if not access_token:
            raise ValueError("MercadoPago access token is required")
        self.access_token = access_token
        self.base_url = api_url.rstrip('/')
        self.webhook_secret = webhook_secret
        self.notification_url = notification_url
        self.timeout = timeout
        self.session = session or _get_session_with_retry(max_retries)

    def _headers(self, idempotency_key=None):
        headers = {
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json',
        }
        if idempotency_key:
            headers['X-Idempotency-Key'] = idempotency_key
        return headers

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"MercadoPago API request failed: {str(e)}", extra={'url': url})
            raise GatewayError(f"MercadoPago request failed: {e}", gateway=self.name) from e

        if response.status_code >= 400:
            logger.error(
                f"MercadoPago API returned {response.status_code}",
                extra={'url': url, 'body': response.text[:500]},
            )
            raise GatewayError(
                f"MercadoPago returned HTTP {response.status_code}",
                gateway=self.name,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError("MercadoPago returned a non-JSON response", gateway=self.name) from e

    def create_payment(self, amount, payer, idempotency_key, **kwargs):
        """
        Create a PIX payment.

        Args:
            amount: Amount to charge (Decimal)
            payer: Dict with 'email' and optionally 'document' (CPF)
            idempotency_key: Sent as X-Idempotency-Key
            **kwargs: description, transaction_id

        Returns:
            GatewayPayment
        """
        payload = {
            "transaction_amount": float(amount),
            "description": kwargs.get('description') or f"P2P trade {kwargs.get('transaction_id', '')}".strip(),
            "payment_method_id": "pix",
            "payer": {"email": payer['email']},
        }
        if payer.get('document'):
            payload['payer']['identification'] = {
                "type": "CPF",
                "number": ''.join(ch for ch in payer['document'] if ch.isdigit()),
            }
        if self.notification_url:
            payload['notification_url'] = self.notification_url
        if kwargs.get('transaction_id') is not None:
            payload['external_reference'] = str(kwargs['transaction_id'])

        logger.info(f"Initiating MercadoPago PIX payment, amount: {amount}")
        data = self._request('POST', '/v1/payments', json=payload, headers=self._headers(idempotency_key))

        try:
            transaction_data = data['point_of_interaction']['transaction_data']
            payment = GatewayPayment(
                external_id=str(data['id']),
                qr_payload=transaction_data['qr_code'],
                qr_image_base64=transaction_data.get('qr_code_base64'),
                gateway_status=data['status'],
                expires_at=parse_datetime(data['date_of_expiration']) if data.get('date_of_expiration') else None,
            )
        except (KeyError, TypeError) as e:
            logger.error(f"Unexpected MercadoPago payment response: missing {e}")
            raise GatewayError("MercadoPago payment response is missing fields", gateway=self.name) from e

        logger.info(f"MercadoPago payment created. ID: {payment.external_id}")
        return payment

    def get_payment(self, external_id):
        data = self._request('GET', f'/v1/payments/{external_id}', headers=self._headers())
        if 'status' not in data:
            raise GatewayError("MercadoPago payment response has no status", gateway=self.name)
        paid_at = parse_datetime(data['date_approved']) if data.get('date_approved') else None
        return GatewayPaymentStatus(gateway_status=data['status'], paid_at=paid_at)

    def cancel_payment(self, external_id):
        logger.info(f"Cancelling MercadoPago payment {external_id}")
        data = self._request(
            'PUT', f'/v1/payments/{external_id}', json={'status': 'cancelled'}, headers=self._headers()
        )
        return GatewayPaymentStatus(gateway_status=data.get('status', 'cancelled'))

    def validate_webhook(self, data_id, signature, request_id=None):
        """
        Verify the x-signature header: "ts=<timestamp>,v1=<hex hmac>" where the
        HMAC-SHA256 is taken over "<data id>;<request id>;<timestamp>".
        Always True when no webhook secret is configured.
        """
        if not self.webhook_secret:
            return True
        if not signature:
            logger.warning("Webhook signature missing")
            return False

        parts = dict(
            part.strip().split('=', 1) for part in signature.split(',') if '=' in part
        )
        timestamp, received = parts.get('ts'), parts.get('v1')
        if not timestamp or not received:
            logger.warning("Webhook signature has an invalid format")
            return False

        manifest = f"{data_id};{request_id or ''};{timestamp}"
        expected = hmac.new(self.webhook_secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(received, expected)
