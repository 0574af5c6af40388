from flask import jsonify
from flask_jwt_extended import jwt_required
from content_history.utils.decorators import roles_required
from content_history.utils.live_state import read_live_state
from content_history.utils.versioning import latest_version_number
from content_history.normalizers.version import normalize_state
from . import v1_bp


@v1_bp.route("/pages/<page_name>/content", methods=["GET"])
@jwt_required()
@roles_required("admin", "editor")
def get_live_content(page_name):
    state = read_live_state(page_name)
    latest = latest_version_number(page_name)

    response = jsonify(normalize_state(page_name, state, version_number=latest))
    # Editors send this back in If-Match when saving
    response.headers["ETag"] = f'"{latest or 0}"'
    return response, 200
