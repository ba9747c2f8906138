from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify, request

from ..core.constants import CONFLICT_CODE
from ..core.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def conflict_response(exc: ConflictError):
    return jsonify({"message": str(exc), "code": CONFLICT_CODE, "entity": exc.kind}), 409


def json_errors(view):
    """Translate domain errors raised by a JSON view into HTTP responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ConflictError as e:
            return conflict_response(e)
        except NotFoundError as e:
            return jsonify({"message": str(e)}), 404
        except ValidationError as e:
            return jsonify({"message": str(e)}), 400
        except Exception:
            logger.exception("Unhandled error in %s", request.path)
            return jsonify({"message": "Server error"}), 500

    return wrapper
