from flask import jsonify
from werkzeug.exceptions import HTTPException
from content_history.domain.exceptions import (
    VersionControlError,
    ValidationError,
    ConflictError,
    CommitFailed,
    NotFoundError,
    SaveIncomplete,
)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (CommitFailed, 409),
)


def register_error_handlers(app):
    @app.errorhandler(VersionControlError)
    def handle_version_control_error(error):
        status = 500
        for error_type, code in STATUS_BY_ERROR:
            if isinstance(error, error_type):
                status = code
                break

        body = {
            "error": type(error).__name__,
            "message": str(error)
        }

        if isinstance(error, SaveIncomplete):
            body["version_number"] = error.version_number
            body["retry_apply"] = True

        if status >= 500:
            app.logger.error("%s: %s", type(error).__name__, error)

        response = jsonify(body)
        response.status_code = status
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        response = jsonify({
            "error": error.name,
            "message": error.description
        })
        response.status_code = error.code
        return response
