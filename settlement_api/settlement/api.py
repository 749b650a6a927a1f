import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import (
    BusinessRuleError,
    InfrastructureError,
    NotFoundError,
    PreconditionFailedError,
    SettlementError,
)

logger = logging.getLogger(__name__)


def _error_response(exc, kind, status_code):
    body = {'status': 'error', 'kind': kind, 'message': str(exc)}
    if isinstance(exc, SettlementError):
        body['detail'] = exc.to_dict()
    return Response(body, status=status_code)


def settlement_exception_handler(exc, context):
    """
    DRF exception handler that turns settlement errors into HTTP responses.

    Business rule violations and lost races are 409, infrastructure failures
    503 so clients retry, bad arguments 400. Anything else falls through to
    DRF's default handler.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    view_name = view.__class__.__name__ if view is not None else None

    if isinstance(exc, NotFoundError):
        return _error_response(exc, 'not_found', status.HTTP_404_NOT_FOUND)
    if isinstance(exc, BusinessRuleError):
        return _error_response(exc, 'business', status.HTTP_409_CONFLICT)
    if isinstance(exc, PreconditionFailedError):
        logger.warning(f"Write conflict in {view_name}: {exc}")
        return _error_response(exc, 'conflict', status.HTTP_409_CONFLICT)
    if isinstance(exc, InfrastructureError):
        logger.error(f"Infrastructure error in {view_name}: {exc}")
        return _error_response(exc, 'system', status.HTTP_503_SERVICE_UNAVAILABLE)
    if isinstance(exc, ValueError):
        return _error_response(exc, 'validation', status.HTTP_400_BAD_REQUEST)
    return None
