"""Signed bearer tokens carrying a user identity and role.

Tokens are HS256 JWTs. The identity is written under ``id``; tokens minted
by older releases used ``userId`` and are still accepted.
"""
import datetime

import jwt

ALGORITHM = 'HS256'
DEFAULT_EXPIRES_IN = 7 * 24 * 60 * 60  # 7 days
IDENTITY_CLAIMS = ('id', 'userId')


class TokenError(Exception):
    pass


class InvalidToken(TokenError):
    pass


class TokenExpired(TokenError):
    pass


def issue_token(identity, role, secret, expires_in=DEFAULT_EXPIRES_IN, now=None):
    now = now or datetime.datetime.now(datetime.timezone.utc)
    payload = {
        'id': str(identity),
        'role': role,
        'iat': now,
        'exp': now + datetime.timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token, secret, now=None):
    """Return the token claims with the resolved ``identity`` added.

    Raises TokenExpired once the embedded expiration has passed, whether or
    not the signature checks out, and InvalidToken for anything else.
    """
    if not token:
        raise InvalidToken('Token is missing')

    try:
        unverified = jwt.decode(token, options={'verify_signature': False})
    except jwt.InvalidTokenError as e:
        raise InvalidToken(str(e)) from e

    now = now or datetime.datetime.now(datetime.timezone.utc)
    exp = unverified.get('exp')
    if exp is not None:
        try:
            expired = now.timestamp() >= float(exp)
        except (TypeError, ValueError) as e:
            raise InvalidToken('Expiration claim is not a timestamp') from e
        if expired:
            raise TokenExpired('Token expired')

    try:
        # exp was checked above against the caller's clock
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM], options={'verify_exp': False})
    except jwt.InvalidTokenError as e:
        raise InvalidToken(str(e)) from e

    identity = next((claims[name] for name in IDENTITY_CLAIMS if claims.get(name)), None)
    if not identity:
        raise InvalidToken('Invalid token format')

    claims['identity'] = str(identity)
    return claims
