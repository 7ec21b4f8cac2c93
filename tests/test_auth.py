import pytest
import requests

import firebase_auth


def test_register_logs_in(client):
    response = client.post('/api/v1/auth/register', json={
        'username': 'ann', 'name': 'Ann', 'email': 'Ann@Example.com', 'password': 'secret123',
    })
    assert response.status_code == 201
    assert response.get_json() == {'id': 'ann', 'name': 'Ann', 'role': 'user'}

    session = client.get('/api/v1/auth/session').get_json()
    assert session['user']['id'] == 'ann'


def test_register_validation(client):
    response = client.post('/api/v1/auth/register', json={'username': 'a', 'email': 'nope', 'password': '1'})
    assert response.status_code == 400
    assert set(response.get_json()['errors']) == {'username', 'email', 'password'}


def test_register_conflicts(client, make_user):
    make_user('ann')
    response = client.post('/api/v1/auth/register', json={'username': 'ann', 'password': 'secret123'})
    assert response.status_code == 409
    assert response.get_json()['errors'] == {'username': 'This username is already used.'}

    client.post('/api/v1/auth/register', json={'username': 'bob', 'email': 'b@x.io', 'password': 'secret123'})
    response = client.post('/api/v1/auth/register', json={'username': 'cid', 'email': 'B@x.io', 'password': 'secret123'})
    assert response.status_code == 409
    assert 'email' in response.get_json()['errors']


def test_login_and_logout(client, make_user, login):
    make_user('ann')
    assert client.get('/api/v1/auth/session').get_json() == {'user': None}

    login('ann')
    assert client.get('/api/v1/auth/session').get_json()['user']['id'] == 'ann'

    assert client.post('/api/v1/auth/logout').get_json() == {'message': 'success'}
    assert client.get('/api/v1/auth/session').get_json() == {'user': None}


def test_login_rejects_wrong_password(client, make_user):
    make_user('ann')
    response = client.post('/api/v1/auth/login', json={'username': 'ann', 'password': 'wrong-one'})
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Invalid username or password'


def test_admin_account_exists(client, login):
    response = login('admin', 'admin-password')
    assert response.get_json()['role'] == 'admin'


def test_get_user(client, make_user):
    make_user('ann')
    assert client.get('/api/v1/user?uid=ann').get_json() == {'id': 'ann', 'name': 'Ann', 'role': 'user'}
    assert client.get('/api/v1/user?uid=nobody').status_code == 404


def test_topics(client):
    topics = client.get('/api/v1/topics').get_json()['data']
    algebra = next(t for t in topics if t['id'] == 'algebra')
    assert {s['id'] for s in algebra['subTopics']} == {'equations', 'matrices', 'polynomials'}


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


@pytest.fixture
def firebase(monkeypatch):
    calls = []

    def respond(status_code=200, payload=None, error=None):
        def fake_post(url, params=None, json=None, timeout=None):
            calls.append({'url': url, 'params': params, 'json': json, 'timeout': timeout})
            if error is not None:
                raise error
            return FakeResponse(status_code, payload or {})
        monkeypatch.setattr(firebase_auth.requests, 'post', fake_post)
        return calls
    return respond


def test_firebase_login(client, make_user, firebase):
    make_user('ann', firebase_uid='uid-123')
    calls = firebase(payload={'users': [{'localId': 'uid-123'}]})

    response = client.post('/api/v1/auth/firebase', json={'idToken': 'token'})
    assert response.status_code == 200
    assert response.get_json()['id'] == 'ann'
    assert calls[0]['params'] == {'key': 'test-api-key'}
    assert calls[0]['json'] == {'idToken': 'token'}
    assert client.get('/api/v1/auth/session').get_json()['user']['id'] == 'ann'


def test_firebase_unknown_account(client, firebase):
    firebase(payload={'users': [{'localId': 'uid-404'}]})
    response = client.post('/api/v1/auth/firebase', json={'idToken': 'token'})
    assert response.status_code == 401
    assert response.get_json()['message'] == 'This account does not exist.'


def test_firebase_rejected_token(client, firebase):
    firebase(status_code=400, payload={'error': {'message': 'INVALID_ID_TOKEN'}})
    response = client.post('/api/v1/auth/firebase', json={'idToken': 'bad'})
    assert response.status_code == 401


def test_firebase_missing_token(client):
    assert client.post('/api/v1/auth/firebase', json={}).status_code == 401


def test_firebase_unreachable(client, firebase):
    firebase(error=requests.exceptions.ConnectionError('down'))
    response = client.post('/api/v1/auth/firebase', json={'idToken': 'token'})
    assert response.status_code == 503
    assert response.get_json()['message'] == 'Authentication service unavailable.'


def test_firebase_not_configured(app, client):
    app.config['FIREBASE_API_KEY'] = ''
    response = client.post('/api/v1/auth/firebase', json={'idToken': 'token'})
    assert response.status_code == 503


def test_wrong_typed_credentials(client, make_user):
    make_user('ann')
    response = client.post('/api/v1/auth/register', json={'username': 5, 'email': [], 'password': 1234567})
    assert response.status_code == 400
    assert set(response.get_json()['errors']) == {'username', 'password'}

    response = client.post('/api/v1/auth/login', json={'username': ['ann'], 'password': 123})
    assert response.status_code == 401
    response = client.post('/api/v1/auth/login', json={'username': 'ann', 'password': 123})
    assert response.status_code == 401


class NonJsonResponse:
    status_code = 200

    def json(self):
        raise ValueError('Expecting value: line 1 column 1 (char 0)')


def test_firebase_non_json_reply(client, monkeypatch):
    monkeypatch.setattr(firebase_auth.requests, 'post', lambda *args, **kwargs: NonJsonResponse())
    response = client.post('/api/v1/auth/firebase', json={'idToken': 'token'})
    assert response.status_code == 503
    assert response.get_json()['message'] == 'Authentication service unavailable.'
