from __future__ import annotations

import dataclasses
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    DomainError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)
from .authorization import RoleAuthorizer
from .datetime_utils import parse_iso_date

# Most specific first; RequestInProgressError is a ConcurrentModificationError.
STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (NotFoundError, 404),
    (DuplicateRecordError, 409),
    (ConcurrentModificationError, 409),
    (AuthorizationError, 403),
)


def status_for(error: DomainError) -> int:
    for kind, status in STATUS_BY_ERROR:
        if isinstance(error, kind):
            return status
    return 422


def to_json(value: Any) -> Any:
    """Make dataclasses, Decimals, dates and enums JSON friendly."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        return jsonify(to_json(e.to_dict())), status_for(e)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": "UNAUTHENTICATED", "message": "Please log in to continue", "details": {}}), 401
        return view(*args, **kwargs)

    return wrapper


def current_authorizer() -> RoleAuthorizer:
    try:
        role = Role(session.get("role"))
    except ValueError:
        role = None
    return RoleAuthorizer(role)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_date(value: Optional[str], field_name: str, *, default: Optional[date] = None) -> date:
    if not value:
        if default is not None:
            return default
        raise ValidationError(f"{field_name} is required", field=field_name)
    return parse_iso_date(value, field_name)


def optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    return parse_date(value, field_name) if value else None


def parse_int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)


def parse_bool(value: Any, field_name: str, *, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{field_name} must be true or false", field=field_name)
