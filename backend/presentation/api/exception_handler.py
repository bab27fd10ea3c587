import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from domain.shared.exceptions import DomainException

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Map domain errors to 400 responses; everything else goes to DRF.
    """
    if isinstance(exc, DomainException):
        logger.info(f"Request rejected ({exc.code}): {exc.message}")
        return Response(
            {
                'detail': exc.message,
                'error': exc.code,
                'details': exc.details,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )

    return exception_handler(exc, context)
