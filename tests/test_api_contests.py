from datetime import timedelta

import pytest

from models import Contest, ContestProblem, Submission, db, utcnow

FUTURE = timedelta(days=1)
PAST = timedelta(days=-2)


@pytest.fixture
def problems(make_problem):
    return [
        make_problem('admin', title='Sum', answer=5050),
        make_problem('admin', title='Identity', type='matrix', answer=[['1', '0'], ['0', '1']]),
    ]


def contest_body(problem_ids, **extra):
    start = utcnow() + timedelta(hours=1)
    body = {
        'title': 'Spring Round',
        'description': 'Two warm-up problems',
        'startAt': start.isoformat() + 'Z',
        'endAt': (start + timedelta(hours=2)).isoformat() + 'Z',
        'problems': [{'problem': {'id': pid}, 'score': (i + 1) * 10} for i, pid in enumerate(problem_ids)],
    }
    body.update(extra)
    return body


def submit(client, contest_id, problem_id, answer):
    return client.post('/api/v1/contest/submit',
                       json={'contestId': contest_id, 'problemId': problem_id, 'answer': answer})


def test_create_contest(app, client, make_user, login, problems):
    make_user('ann')
    login('ann')
    response = client.post('/api/v1/contest', json=contest_body(problems, topicId='algebra'))
    assert response.status_code == 201
    contest_id = response.get_json()['id']

    with app.app_context():
        contest = db.session.get(Contest, contest_id)
        assert contest.author_id == 'ann'
        assert contest.topic_id == 'algebra'
        assert [(cp.problem_id, cp.score, cp.order) for cp in contest.to_problems] == [
            (problems[0], 10, 0), (problems[1], 20, 1)]


def test_create_contest_requires_login(client, problems):
    assert client.post('/api/v1/contest', json=contest_body(problems)).status_code == 401


def test_create_contest_validation(client, make_user, login, problems):
    make_user('ann')
    login('ann')
    body = contest_body(problems)
    body['endAt'] = body['startAt']
    body['problems'] = []
    response = client.post('/api/v1/contest', json=body)
    assert response.status_code == 400
    assert set(response.get_json()['errors']) == {'endAt', 'problems'}


def test_waiting_contest_hides_problems(client, make_user, make_contest, login, problems):
    contest_id = make_contest('admin', [(problems[0], 10)], starts_in=FUTURE)

    data = client.get(f'/api/v1/contest?id={contest_id}').get_json()
    assert data['status'] == 'waiting'
    assert data['problemsData'] == []
    assert data['problemsCount'] == 1

    login('admin', 'admin-password')
    data = client.get(f'/api/v1/contest?id={contest_id}').get_json()
    assert data['problemsData'][0]['problem']['answer'] == 5050
    assert data['views'] == 2


def test_ongoing_contest_masks_answers(client, make_contest, problems):
    contest_id = make_contest('admin', [(problems[0], 10), (problems[1], 20)])
    data = client.get(f'/api/v1/contest?id={contest_id}').get_json()
    assert data['status'] == 'ongoing'
    assert [p['problem']['id'] for p in data['problemsData']] == problems
    assert all(p['problem']['answer'] == '{}' for p in data['problemsData'])
    assert [p['score'] for p in data['problemsData']] == [10, 20]


def test_missing_contest(client):
    assert client.get('/api/v1/contest?id=77').status_code == 404


def test_list_by_status(client, make_contest, problems):
    waiting = make_contest('admin', [(problems[0], 1)], starts_in=FUTURE)
    ongoing = make_contest('admin', [(problems[0], 1)])
    closed = make_contest('admin', [(problems[0], 1)], starts_in=PAST)

    data = client.get('/api/v1/contests').get_json()
    assert [c['id'] for c in data['data']] == [waiting, ongoing, closed]
    assert data['pagination']['total_records'] == 3

    for status, contest_id in (('waiting', waiting), ('ongoing', ongoing), ('closed', closed)):
        data = client.get(f'/api/v1/contests?status={status}').get_json()
        assert [c['id'] for c in data['data']] == [contest_id]
        assert data['data'][0]['status'] == status

    assert len(client.get('/api/v1/contests?status=bogus').get_json()['data']) == 3


def test_submit_scores_answers(client, make_user, make_contest, login, problems):
    make_user('ann')
    contest_id = make_contest('admin', [(problems[0], 10), (problems[1], 20)])
    login('ann')

    assert submit(client, contest_id, problems[0], '5000').get_json() == {
        'correct': False, 'score': 0, 'official': True}
    assert submit(client, contest_id, problems[0], '5050').get_json() == {
        'correct': True, 'score': 10, 'official': True}
    assert submit(client, contest_id, problems[1], '1 0\n0 1').get_json()['score'] == 20

    response = submit(client, contest_id, problems[0], '5050')
    assert response.status_code == 409

    entries = client.get(f'/api/v1/contest/submissions?id={contest_id}').get_json()['data']
    first = entries[str(problems[0])]
    assert first['score'] == 10
    assert [a['score'] for a in first['attempts']] == [0, 10]
    assert first['attempts'][0]['answer'] == 5000.0


def test_submit_rules(client, make_user, make_problem, make_contest, login, problems):
    make_user('ann')
    waiting = make_contest('admin', [(problems[0], 10)], starts_in=FUTURE)
    ongoing = make_contest('admin', [(problems[0], 10)])
    other = make_problem('admin', title='Not in the round')
    login('ann')

    assert submit(client, waiting, problems[0], '5050').status_code == 403
    assert submit(client, ongoing, other, '42').status_code == 404
    assert submit(client, ongoing, problems[0], 'lots').status_code == 400
    assert submit(client, 999, problems[0], '5050').status_code == 404


def test_submit_requires_login(client, make_contest, problems):
    contest_id = make_contest('admin', [(problems[0], 10)])
    assert submit(client, contest_id, problems[0], '5050').status_code == 401
    assert client.get(f'/api/v1/contest/submissions?id={contest_id}').status_code == 401


def test_submit_cooldown(app, client, make_user, make_contest, login, problems):
    app.config['SUBMISSION_COOLDOWN_SECONDS'] = 5
    make_user('ann')
    contest_id = make_contest('admin', [(problems[0], 10)])
    login('ann')

    assert submit(client, contest_id, problems[0], '1').status_code == 200
    response = submit(client, contest_id, problems[0], '5050')
    assert response.status_code == 429
    assert 'cooldown' in response.get_json()

    with app.app_context():
        submission = Submission.query.filter_by(user_id='ann').one()
        submission.submitted_at = utcnow() - timedelta(seconds=6)
        db.session.commit()
    assert submit(client, contest_id, problems[0], '5050').get_json()['correct'] is True


def test_closed_contest_submissions_are_unofficial(client, make_user, make_contest, login, problems):
    make_user('ann')
    contest_id = make_contest('admin', [(problems[0], 10)], starts_in=PAST)
    login('ann')

    assert submit(client, contest_id, problems[0], '5050').get_json() == {
        'correct': True, 'score': 10, 'official': False}
    assert submit(client, contest_id, problems[0], '5050').status_code == 409

    board = client.get(f'/api/v1/contest/leaderboard?id={contest_id}').get_json()['data']
    assert board[0]['userId'] == 'ann'
    assert board[0]['totalScore'] == 0
    assert board[0]['unofficialScore'] == 10
    assert board[0]['answers'][0]['unofficialCount'] == 1


def test_leaderboard(app, client, make_user, make_contest, login, problems):
    for username in ('ann', 'bob', 'cid'):
        make_user(username)
    contest_id = make_contest('admin', [(problems[0], 10), (problems[1], 20)])

    login('ann')
    submit(client, contest_id, problems[0], '5050')
    login('bob')
    submit(client, contest_id, problems[1], '1 0\n0 1')
    login('cid')
    submit(client, contest_id, problems[0], '1')

    board = client.get(f'/api/v1/contest/leaderboard?id={contest_id}').get_json()['data']
    assert [(p['userId'], p['rank'], p['totalScore']) for p in board] == [
        ('bob', 1, 20), ('ann', 2, 10), ('cid', 3, 0)]
    attempt = board[1]['answers'][0]['attempts'][0]
    assert 'answer' not in attempt
    assert attempt['submittedAt'].endswith('Z')
    assert board[2]['lastScoredAt'] is None

    summary = client.get(f'/api/v1/contest?id={contest_id}').get_json()
    assert summary['participants'] == 3


def test_update_contest(app, client, make_user, make_problem, make_contest, login, problems):
    make_user('ann')
    contest_id = make_contest('ann', [(problems[0], 10), (problems[1], 20)])
    third = make_problem('admin', title='Third')
    login('ann')

    response = client.patch('/api/v1/contest', json={
        'id': contest_id,
        'title': 'Renamed Round',
        'problems': [{'problem': {'id': problems[1]}, 'score': 5}, {'problem': {'id': third}, 'score': 7}],
    })
    assert response.status_code == 200

    with app.app_context():
        contest = db.session.get(Contest, contest_id)
        assert contest.title == 'Renamed Round'
        assert contest.description == 'Solve them all'
        assert [(cp.problem_id, cp.score) for cp in contest.to_problems] == [(problems[1], 5), (third, 7)]
        assert ContestProblem.query.count() == 2


def test_update_contest_rejects_bad_dates(client, make_user, make_contest, login, problems):
    make_user('ann')
    contest_id = make_contest('ann', [(problems[0], 10)])
    login('ann')
    response = client.patch('/api/v1/contest', json={'id': contest_id, 'endAt': '2000-01-01T00:00:00Z'})
    assert response.status_code == 400
    assert 'endAt' in response.get_json()['errors']


def test_only_author_or_admin_changes_contest(app, client, make_user, make_contest, login, problems):
    make_user('ann')
    make_user('bob')
    contest_id = make_contest('ann', [(problems[0], 10)])

    login('bob')
    assert client.patch('/api/v1/contest', json={'id': contest_id, 'title': 'Mine'}).status_code == 403
    assert client.delete(f'/api/v1/contest?id={contest_id}').status_code == 403

    login('ann')
    submit(client, contest_id, problems[0], '5050')
    assert client.delete(f'/api/v1/contest?id={contest_id}').get_json() == {'message': 'success'}

    with app.app_context():
        assert db.session.get(Contest, contest_id) is None
        assert Submission.query.count() == 0
        assert ContestProblem.query.count() == 0


def test_create_contest_rejects_wrong_field_types(client, make_user, login, problems):
    make_user('ann')
    login('ann')
    response = client.post('/api/v1/contest', json=contest_body(problems, title=5, problems=5))
    assert response.status_code == 400
    assert set(response.get_json()['errors']) == {'title', 'problems'}

    response = client.post('/api/v1/contest', json=[contest_body(problems)])
    assert response.status_code == 400


def test_removed_problem_leaves_the_leaderboard(app, client, make_user, make_contest, login, problems):
    make_user('ann')
    make_user('bob')
    contest_id = make_contest('ann', [(problems[0], 10), (problems[1], 20)])

    login('bob')
    submit(client, contest_id, problems[0], '1')
    submit(client, contest_id, problems[0], '5050')
    submit(client, contest_id, problems[1], '1 0\n0 1')
    assert client.get(f'/api/v1/contest?id={contest_id}').get_json()['participants'] == 1

    login('ann')
    response = client.patch('/api/v1/contest', json={
        'id': contest_id, 'problems': [{'problem': {'id': problems[1]}, 'score': 20}]})
    assert response.status_code == 200

    board = client.get(f'/api/v1/contest/leaderboard?id={contest_id}').get_json()['data']
    assert [(p['userId'], p['totalScore']) for p in board] == [('bob', 20)]
    assert [a['problemId'] for a in board[0]['answers']] == [problems[1]]

    with app.app_context():
        assert Submission.query.filter_by(problem_id=problems[0]).count() == 0
        assert Submission.query.filter_by(problem_id=problems[1]).count() == 1

    login('admin', 'admin-password')
    assert client.delete(f'/api/v1/problem?id={problems[0]}').status_code == 200
    assert client.get(f'/api/v1/contest/leaderboard?id={contest_id}').get_json()['data'][0]['totalScore'] == 20
