# blogsite/errors.py
from flask import jsonify, current_app, request
from pymongo.errors import DuplicateKeyError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base class for errors that are reported to the client as `{message}`."""
    status_code = 500
    default_message = 'Server error'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'message': self.message}


class ValidationError(ApiError):
    status_code = 400
    default_message = 'Invalid input'


class Unauthenticated(ApiError):
    status_code = 401
    default_message = 'Token is not valid'


class Forbidden(ApiError):
    status_code = 403
    default_message = 'Not authorized'


class NotFound(ApiError):
    status_code = 404
    default_message = 'Resource not found'


class Conflict(ApiError):
    status_code = 409
    default_message = 'Resource already exists'


class PayloadTooLarge(ApiError):
    status_code = 413
    default_message = 'Payload too large'


# --- error handlers ---

def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(DuplicateKeyError)
    def handle_duplicate_key(e):
        current_app.logger.info(f"Duplicate key rejected: {e.details.get('keyValue') if e.details else e}")
        return jsonify(message=_duplicate_message(e)), Conflict.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        if e.code == 404:
            message = 'Resource not found'
        elif e.code == 413:
            message = 'Payload too large'
        elif e.code == 429:
            message = 'Too many requests from this IP, please try again later'
        else:
            message = e.description
        return jsonify(message=message), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        current_app.logger.error(f"Unhandled error on {request.path}: {e}", exc_info=True)
        if current_app.config.get('ENV_NAME') == 'production':
            return jsonify(message='Internal server error'), 500
        return jsonify(message=str(e) or 'Internal server error'), 500


def _duplicate_message(e):
    key_value = (e.details or {}).get('keyValue') or {}
    if 'email' in key_value:
        return 'Email already in use'
    if 'username' in key_value:
        return 'Username already taken'
    if 'slug' in key_value:
        return 'A blog with this title already exists'
    return Conflict.default_message
