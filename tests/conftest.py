import mongomock
import pytest

from blogsite.app import create_app
from blogsite.cache import NullCache
from blogsite.store import Store

TEST_CONFIG = {
    'TESTING': True,
    'ENV_NAME': 'testing',
    'JWT_SECRET_KEY': 'test-secret',
    'BCRYPT_LOG_ROUNDS': 4,
    'RATELIMIT_ENABLED': False,
}


@pytest.fixture
def store():
    store = Store(mongomock.MongoClient()['blogsite_test'])
    store.ensure_indexes()
    return store


@pytest.fixture
def cache():
    return NullCache()


@pytest.fixture
def make_app(store, cache):
    """Build an app over the shared store and cache with config overrides."""
    def _make_app(**overrides):
        return create_app(dict(TEST_CONFIG, **overrides), store=store, cache=cache)
    return _make_app


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def register(client):
    """Register a user and return (token, user json)."""
    def _register(username='alice', email=None, password='secret123'):
        rv = client.post('/api/auth/register', json={
            'username': username,
            'email': email or f'{username}@example.com',
            'password': password,
        })
        assert rv.status_code == 201, rv.get_json()
        body = rv.get_json()
        return body['token'], body['user']
    return _register


@pytest.fixture
def alice(register):
    token, user = register('alice')
    return auth_header(token), user


@pytest.fixture
def bob(register):
    token, user = register('bob')
    return auth_header(token), user


@pytest.fixture
def make_blog(client):
    def _make_blog(headers, title='Hello World', content='Some content', **fields):
        payload = {'title': title, 'content': content}
        payload.update(fields)
        rv = client.post('/api/blogs', json=payload, headers=headers)
        assert rv.status_code == 201, rv.get_json()
        return rv.get_json()
    return _make_blog
