import pytest

TOO_MANY = {'message': 'Too many requests from this IP, please try again later'}


@pytest.fixture
def limited_client(make_app):
    app = make_app(RATELIMIT_ENABLED=True,
                   RATE_LIMIT_DEFAULT='3 per 15 minutes',
                   RATE_LIMIT_AUTH='3 per 15 minutes')
    return app.test_client()


def login(client, email='nobody@example.com'):
    return client.post('/api/auth/login', json={'email': email, 'password': 'secret123'})


def register(client, username):
    return client.post('/api/auth/register', json={
        'username': username, 'email': f'{username}@example.com', 'password': 'secret123'})


def test_api_limit_per_address(limited_client):
    for _ in range(3):
        assert limited_client.get('/api/blogs').status_code == 200

    rv = limited_client.get('/api/blogs')
    assert rv.status_code == 429
    assert rv.get_json() == TOO_MANY


def test_login_and_register_share_one_counter(limited_client):
    assert [login(limited_client).status_code for _ in range(3)] == [400, 400, 400]

    rv = register(limited_client, 'alice')
    assert rv.status_code == 429
    assert rv.get_json() == TOO_MANY


def test_registrations_use_up_login_attempts(limited_client):
    for name in ('alice', 'bobby', 'carol'):
        assert register(limited_client, name).status_code == 201

    assert login(limited_client, 'alice@example.com').status_code == 429


def test_limits_off_by_default(client):
    for _ in range(5):
        assert login(client).status_code == 400
