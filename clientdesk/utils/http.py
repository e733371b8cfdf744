"""Request parsing helpers for the JSON API."""
from __future__ import annotations

from typing import Any, Dict

from flask import request

from ..errors import ValidationError


def json_body() -> Dict[str, Any]:
    """Return the JSON object body, treating an absent body as empty."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload
