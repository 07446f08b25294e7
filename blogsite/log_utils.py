from flask import request, current_app

SENSITIVE_FIELDS = (
    'password', 'token', 'secret', 'jwt', 'auth', 'cookie', 'session',
    'ssn', 'credit', 'card', 'private', 'authorization',
)
REDACTED = '[REDACTED]'


def is_sensitive(key):
    key = str(key).lower()
    return any(field in key for field in SENSITIVE_FIELDS)


def redact(value):
    """Copy of `value` with the values of sensitive keys masked."""
    if isinstance(value, dict):
        return {
            k: (REDACTED if v else v) if is_sensitive(k) else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


def log_request():
    if current_app.config.get('ENV_NAME') == 'production':
        return
    current_app.logger.info('%s %s query=%s body=%s headers=%s',
                            request.method,
                            request.full_path.rstrip('?'),
                            redact(request.args.to_dict()),
                            redact(request.get_json(silent=True)),
                            redact(dict(request.headers)))
