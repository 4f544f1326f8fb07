"""DRF exception handler translating team closing errors into HTTP responses."""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

from closing.exceptions import (
    ClosedPeriodError,
    ClosingError,
    ClosingValidationError,
    InProgressError,
    MissingPrerequisiteError,
    StorageConsistencyError,
)
from core.periods import period_label

logger = logging.getLogger(__name__)

CLOSING_ERROR_STATUS = (
    (ClosingValidationError, status.HTTP_400_BAD_REQUEST),
    (MissingPrerequisiteError, status.HTTP_409_CONFLICT),
    (ClosedPeriodError, status.HTTP_409_CONFLICT),
    (InProgressError, status.HTTP_423_LOCKED),
    (StorageConsistencyError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: ClosingError) -> int:
    for error_class, status_code in CLOSING_ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def closing_exception_handler(exc, context):
    """Domain errors keep their message and code; everything else goes through DRF."""
    if isinstance(exc, ClosingError):
        status_code = status_for(exc)
        data = {"detail": exc.message, "code": exc.code}
        field = getattr(exc, "field", None)
        if field:
            data["field"] = field
        if exc.reference_month is not None:
            data["reference_month"] = period_label(exc.reference_month)
        if status_code >= 500:
            logger.error("Team closing storage failure: %s", exc.message)
        set_rollback()
        return Response(data, status=status_code)

    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        exc = ValidationError(detail=detail)

    return exception_handler(exc, context)
