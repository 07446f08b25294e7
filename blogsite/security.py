# blogsite/security.py
from flask import request, g, current_app
from markupsafe import escape

from blogsite.errors import PayloadTooLarge

BODY_METHODS = ('POST', 'PUT', 'PATCH', 'DELETE')

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'X-XSS-Protection': '1; mode=block',
    'Content-Security-Policy': (
        "default-src 'self'; img-src 'self' data:; style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; connect-src 'self'; font-src 'self'; object-src 'none'; "
        "media-src 'self'; frame-src 'none';"
    ),
    'Cache-Control': 'no-store, no-cache, must-revalidate, proxy-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}


def escape_text(value):
    return str(escape(value)).replace('/', '&#x2F;')


def sanitize(value, key=''):
    """HTML-escape every string in a decoded JSON value.

    Values under password keys are passed through untouched.
    """
    if 'password' in key.lower():
        return value
    if isinstance(value, dict):
        return {k: sanitize(v, k) for k, v in value.items()}
    if isinstance(value, list):
        return [sanitize(item, key) for item in value]
    if isinstance(value, str):
        return escape_text(value)
    return value


def sanitize_request():
    limit = current_app.config.get('MAX_CONTENT_LENGTH')
    if limit and request.content_length and request.content_length > limit:
        raise PayloadTooLarge()

    g.payload = {}
    if request.method in BODY_METHODS:
        data = request.get_json(silent=True)
        if data is not None:
            g.payload = sanitize(data)
    g.query = {k: sanitize(v, k) for k, v in request.args.items()}


def add_security_headers(response):
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if current_app.config.get('ENV_NAME') == 'production':
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains; preload'
    return response


def init_security(app):
    app.before_request(sanitize_request)
    app.after_request(add_security_headers)
