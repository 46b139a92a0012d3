"""Request payload helpers shared by the JSON blueprints."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from flask import request

from ..errors import InvalidValue

# ASCII only: str.isdigit also accepts characters int() rejects, such as "²".
_INT_PATTERN = re.compile(r"-?[0-9]+")


def json_body() -> Mapping[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def parse_int(value: Any, *, field: str) -> int:
    """Accept ints and digit strings; reject bools, floats and garbage."""
    if isinstance(value, bool):
        raise InvalidValue(f"{field} must be a whole number", field=field, value=value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_PATTERN.fullmatch(value.strip()):
        try:
            return int(value.strip())
        except ValueError as exc:  # longer than sys.get_int_max_str_digits()
            raise InvalidValue(f"{field} is too large", field=field, value=value[:32]) from exc
    raise InvalidValue(f"{field} must be a whole number", field=field, value=value)


def parse_decimal(value: Any, *, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidValue(f"{field} must be a number", field=field, value=value)
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidValue(f"{field} must be a number", field=field, value=value) from exc
