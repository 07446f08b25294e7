"""Best-effort response cache for anonymous GET requests.

The backing store is chosen once at startup: Redis when REDIS_URL is set and
reachable, otherwise NullCache, which never hits. Handlers never need to ask
whether caching is available.
"""
import logging
from functools import wraps

import redis
from flask import request, current_app, make_response

logger = logging.getLogger(__name__)

KEY_PREFIX = 'cache:'


class Cache:
    def get(self, key):
        raise NotImplementedError

    def set(self, key, value, ttl):
        raise NotImplementedError

    def ping(self):
        return False

    def close(self):
        pass


class NullCache(Cache):
    def get(self, key):
        return None

    def set(self, key, value, ttl):
        pass


class RedisCache(Cache):
    def __init__(self, client):
        self.client = client

    @classmethod
    def from_url(cls, url):
        return cls(redis.Redis.from_url(url, socket_timeout=2, socket_connect_timeout=2))

    def get(self, key):
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis cache read failed for {key}: {e}")
            return None

    def set(self, key, value, ttl):
        try:
            self.client.set(key, value, ex=ttl)
        except redis.RedisError as e:
            logger.error(f"Redis cache write failed for {key}: {e}")

    def ping(self):
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def close(self):
        self.client.close()


def build_cache(url):
    if not url:
        logger.info('REDIS_URL not set, response cache disabled')
        return NullCache()
    cache = RedisCache.from_url(url)
    if not cache.ping():
        logger.warning('Redis unreachable, response cache disabled')
        cache.close()
        return NullCache()
    logger.info('Redis connected')
    return cache


def get_cache():
    return current_app.extensions['blogsite.cache']


def cache_key():
    key = KEY_PREFIX + request.path
    if request.query_string:
        key += '?' + request.query_string.decode('utf-8', 'replace')
    return key


def cached(ttl=None):
    """Serve and memoize successful JSON responses of unauthenticated GETs."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if request.method != 'GET' or request.headers.get('Authorization'):
                return f(*args, **kwargs)

            cache = get_cache()
            key = cache_key()
            body = cache.get(key)
            if body is not None:
                return current_app.response_class(body, status=200, mimetype='application/json')

            response = make_response(f(*args, **kwargs))
            if response.status_code == 200:
                timeout = ttl or current_app.config.get('CACHE_TTL', 60)
                payload = response.get_data()
                # written once the response has been handed to the client
                response.call_on_close(lambda: cache.set(key, payload, timeout))
            return response
        return decorated
    return decorator
