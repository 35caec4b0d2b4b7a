"""Domain errors and the REST exception handler that renders them"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BackofficeError(Exception):
    """Business rule violation that should reach the client as a readable error"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class ConflictError(BackofficeError):
    """Operation conflicts with existing data (sold goods, duplicates, unpaid debts)"""
    status_code = status.HTTP_409_CONFLICT


class PaymentError(BackofficeError):
    """Invalid payment amount or an empty cash register"""


def backoffice_exception_handler(exc, context):
    if isinstance(exc, BackofficeError):
        logger.warning(f"{exc.__class__.__name__}: {exc.message}")
        body = {'error': exc.message}
        if exc.details:
            body['details'] = exc.details
        return Response(body, status=exc.status_code)
    return exception_handler(exc, context)
