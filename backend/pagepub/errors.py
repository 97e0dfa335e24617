# pagepub/errors.py
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from pagepub.domain.errors import CorruptSnapshotError, PublishingError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    @app.errorhandler(PublishingError)
    def handle_publishing_error(error):
        if isinstance(error, CorruptSnapshotError):
            logger.error("Render aborted: %s", error.message)
        response = jsonify({
            "error": error.public_kind(),
            "message": error.public_message(),
        })
        response.status_code = error.status_code
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        response = jsonify({
            "error": error.name,
            "message": error.description,
        })
        response.status_code = error.code
        return response
