from flask import request

from .errors import ValidationError


def json_body() -> dict:
    """The request's JSON object, or {} when no body was sent."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def bounded_int(data: dict, key: str, default: int, low: int, high: int) -> int:
    """Read an optional integer field, rejecting anything outside [low, high]."""
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{key} must be an integer')
    if value < low or value > high:
        raise ValidationError(f'{key} must be between {low} and {high}')
    return value


def optional_bool(data: dict, key: str):
    value = data.get(key)
    if value is not None and not isinstance(value, bool):
        raise ValidationError(f'{key} must be a boolean')
    return value
