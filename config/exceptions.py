# config/exceptions.py

import logging

from django.db import DatabaseError
from django.http import Http404
from django.core.exceptions import PermissionDenied
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ValidationFailed(exceptions.APIException):
    """Malformed id, missing required field or disallowed value."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request."
    default_code = "invalid"


class Forbidden(exceptions.APIException):
    """The actor has no relationship to the resource that allows the action."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized."
    default_code = "forbidden"


class SlotConflict(exceptions.APIException):
    """The user already holds a non-cancelled reservation for the slot."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "You already have a reservation for this slot"
    default_code = "duplicate_slot"


class SlotFull(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "No availability for selected slot"
    default_code = "slot_full"


def parse_id(value, message: str) -> int:
    """
    Convert a client supplied identifier into a primary key.
    Raises ValidationFailed for anything that is not a positive integer.
    """
    if isinstance(value, bool):
        raise ValidationFailed(message)
    try:
        pk = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationFailed(message)
    if pk < 1:
        raise ValidationFailed(message)
    return pk


def _first_message(detail):
    if isinstance(detail, dict):
        if "detail" in detail:
            return _first_message(detail["detail"])
        for field, value in detail.items():
            message = _first_message(value)
            if field == "non_field_errors":
                return message
            return f"{field}: {message}"
        return "Invalid request."
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else "Invalid request."
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render every error as ``{"message": ...}``.

    Serializer field errors are also returned under ``errors``; anything DRF
    does not know how to handle (database failures included) becomes a 500
    without internal details.
    """
    if isinstance(exc, Http404):
        exc = exceptions.NotFound(str(exc) or "Not found.")
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        kind = "Database error" if isinstance(exc, DatabaseError) else "Unhandled error"
        logger.error(
            f"{kind} in {view.__class__.__name__ if view else 'unknown view'}",
            exc_info=exc,
        )
        return Response(
            {"message": "Server error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    body = {"message": _first_message(response.data)}
    if isinstance(exc, exceptions.ValidationError) and isinstance(response.data, dict):
        body["errors"] = response.data
    response.data = body
    return response
