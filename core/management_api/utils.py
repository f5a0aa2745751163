import logging

from rest_framework.response import Response

from core.services.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)


def service_error_response(exc):
    """Translate a ServiceError raised by the service layer into an API response"""
    if isinstance(exc, PaymentProviderError):
        logger.error("Payment provider failure: %s", exc.message)
    else:
        logger.info("Request refused (%s): %s", exc.status_code, exc.message)
    return Response(exc.as_payload(), status=exc.status_code)


def parse_int(value, default=None):
    """Query string integer, or ``default`` when missing or malformed"""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
