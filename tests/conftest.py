import json
from datetime import timedelta

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from models import Contest, ContestProblem, Problem, User, db, utcnow

PASSWORD = 'secret123'


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'ADMIN_USERNAME': 'admin',
        'ADMIN_PASSWORD': 'admin-password',
        'FIREBASE_API_KEY': 'test-api-key',
        'SUBMISSION_COOLDOWN_SECONDS': 0,
        'PROBLEM_PAGINATION_COUNT': 2,
        'LOG_LEVEL': 'WARNING',
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(username, role='user', firebase_uid=None):
        with app.app_context():
            db.session.add(User(
                id=username,
                name=username.title(),
                role=role,
                password_hash=generate_password_hash(PASSWORD),
                firebase_uid=firebase_uid,
            ))
            db.session.commit()
        return username
    return _make


@pytest.fixture
def login(client):
    def _login(username, password=PASSWORD):
        response = client.post('/api/v1/auth/login', json={'username': username, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response
    return _login


@pytest.fixture
def make_problem(app):
    def _make(author, title='Problem', answer='42', type='numeric', topic='algebra', sub_topic='equations',
              statement='What is the answer?'):
        with app.app_context():
            problem = Problem(title=title, statement=statement, type=type, answer=json.dumps(answer),
                              topic_id=topic, sub_topic_id=sub_topic, author_id=author)
            db.session.add(problem)
            db.session.commit()
            return problem.id
    return _make


@pytest.fixture
def make_contest(app):
    def _make(author, problems, starts_in=timedelta(hours=-1), lasts=timedelta(hours=2), title='Weekly Round'):
        start = utcnow() + starts_in
        with app.app_context():
            contest = Contest(title=title, description='Solve them all', author_id=author,
                              start_at=start, end_at=start + lasts)
            contest.to_problems = [
                ContestProblem(problem_id=pid, score=score, order=i) for i, (pid, score) in enumerate(problems)
            ]
            db.session.add(contest)
            db.session.commit()
            return contest.id
    return _make
