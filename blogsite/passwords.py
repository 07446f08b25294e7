from blogsite.extensions import bcrypt

MIN_PASSWORD_LENGTH = 6


def hash_password(plaintext):
    # work factor comes from BCRYPT_LOG_ROUNDS, bound in Bcrypt.init_app
    return bcrypt.generate_password_hash(plaintext).decode('utf-8')


def check_password(plaintext, hashed):
    """bcrypt comparison. False on mismatch, ValueError on a malformed hash."""
    if not hashed:
        raise ValueError('Invalid password hash')
    return bcrypt.check_password_hash(hashed, plaintext)
