from rest_framework import status


class ServiceError(Exception):
    """
    Business-rule refusal raised by the service layer.

    Carries the HTTP status the API should answer with and optional extra
    payload (current counts, ids) that is merged into the error body.
    """
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, error, status_code=None, **extra):
        super().__init__(error)
        self.message = error
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def as_payload(self):
        payload = {'error': self.message}
        payload.update(self.extra)
        return payload


class ValidationFailed(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class Throttled(ServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class PaymentProviderError(ServiceError):
    """Stripe rejected or failed a call. Logged, surfaced generically"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
