"""
Custom Exception Handler for API
"""
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

from apps.core.exceptions import StorefrontException, ValidationException

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Render every failure as {"error": <message>, "details"?: ...}.
    Storefront exceptions also carry their `code`.
    """
    if isinstance(exc, StorefrontException):
        data = {"error": exc.message, "code": exc.code}
        if exc.details is not None:
            data["details"] = exc.details
        if isinstance(exc, ValidationException) and exc.field:
            data["field"] = exc.field
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message}")
        return Response(data, status=exc.status_code)

    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        if isinstance(response.data, dict) and set(response.data) == {"detail"}:
            response.data = {"error": str(response.data["detail"])}
        else:
            response.data = {"error": "Invalid request", "details": response.data}
    else:
        # Handle unexpected exceptions
        logger.exception(f"Unhandled exception: {exc}")
        response = Response(
            {
                "error": "An unexpected error occurred",
                "details": str(exc),
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return response
