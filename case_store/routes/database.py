from flask import Blueprint, current_app, jsonify, request

from ..errors import CallerError, CaseStoreError
from ..extensions import store

bp = Blueprint("database_api", __name__)

ACTIONS = ("read", "write", "delete")


def dispatch(store, payload: dict):
    """Run one ``{action, collection, data?, id?}`` request against ``store``."""
    if not isinstance(payload, dict):
        raise CallerError("Request body must be a JSON object")

    action = payload.get("action")
    collection = payload.get("collection")
    data = payload.get("data")
    item_id = payload.get("id")

    if action not in ACTIONS:
        raise CallerError(f"Unsupported action: {action!r}")
    if item_id is not None and (not isinstance(item_id, str) or not item_id):
        raise CallerError("id must be a non-empty string")

    if action == "read":
        return store.read(collection)
    if action == "write":
        if data is None:
            raise CallerError("data is required for write")
        if not isinstance(data, dict):
            raise CallerError("data must be a JSON object")
        return store.write(collection, data, item_id)
    if item_id is None:
        raise CallerError("id is required for delete")
    return store.delete(collection, item_id)


def _error(message: str, status: int):
    return jsonify({"error": message, "data": []}), status


@bp.post("/database")
def database():
    payload = request.get_json(silent=True)
    try:
        return jsonify(dispatch(store, payload))
    except CallerError as e:
        current_app.logger.warning("Rejected database request: %s", e)
        return _error(str(e), e.status)
    except CaseStoreError as e:
        current_app.logger.exception("Database %s on %r failed",
                                     payload.get("action"), payload.get("collection"))
        return _error(str(e), e.status)
    except Exception as e:
        current_app.logger.exception("Unexpected database failure")
        return _error(str(e), 500)
