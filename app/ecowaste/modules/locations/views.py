from flask import Blueprint, current_app, jsonify

from app.ecowaste.backend import BackendError, backend

bp = Blueprint("locations", __name__)


@bp.get("/locations/districts/<district>/cities")
def cities(district: str):
    """JSON city list for the district pickers on the address forms."""
    try:
        data = backend(token="").locations.cities(district)
    except BackendError as e:
        current_app.logger.info("City lookup failed district=%s: %s", district, e.message)
        return jsonify({"cities": []})
    return jsonify({"cities": data.get("cities") or []})
