# blogsite/auth.py
from functools import wraps

from flask import g, request, current_app

from blogsite.errors import Unauthenticated
from blogsite.store import get_store
from blogsite.tokens import InvalidToken, TokenExpired, verify_token


def bearer_token():
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


def authenticate():
    """Resolve the request's bearer token to a User (without password hash)."""
    token = bearer_token()
    if not token:
        raise Unauthenticated('No token, authorization denied')

    try:
        claims = verify_token(token, current_app.config['JWT_SECRET_KEY'])
    except TokenExpired:
        raise Unauthenticated('Token expired')
    except InvalidToken as e:
        current_app.logger.warning(f"Rejected bearer token: {e}")
        raise Unauthenticated('Token is not valid')

    user = get_store().users.get(claims['identity'])
    if user is None:
        raise Unauthenticated('User not found')
    if not user.is_active:
        raise Unauthenticated('Account is disabled')
    if user.password_changed_after(claims.get('iat')):
        raise Unauthenticated('Password was changed, please log in again')
    return user


# Requires a valid bearer token; the caller is exposed as g.current_user
def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        g.current_user = authenticate()
        return f(*args, **kwargs)
    return decorated
