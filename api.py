import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

import services
from auth import authenticate, current_user, login_required, login_user, logout_user, register_user
from errors import AuthenticationRequired, NotFoundError, PlatformError
from firebase_auth import authenticate_id_token
from models import User, db

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api/v1')


@api.errorhandler(PlatformError)
def handle_platform_error(e):
    if e.status_code >= 500:
        logger.error(f'{request.method} {request.path} failed: {e.message}')
    return jsonify(e.to_dict()), e.status_code


@api.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return jsonify({'message': e.description}), e.code
    db.session.rollback()
    logger.exception(f'{request.method} {request.path} crashed: {e}')
    return jsonify({'message': current_app.config['API_FAIL_MESSAGE']}), 500


def _body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _success(**extra):
    return jsonify({'message': 'success', **extra})


# ------------------ Auth ------------------

@api.route('/auth/register', methods=['POST'])
def register():
    user = register_user(_body())
    login_user(user)
    return jsonify(user.to_dict()), 201


@api.route('/auth/login', methods=['POST'])
def login():
    data = _body()
    user = authenticate(data.get('username'), data.get('password'))
    if user is None:
        logger.info(f"Failed login for {data.get('username')!r}")
        raise AuthenticationRequired('Invalid username or password')
    login_user(user)
    return jsonify(user.to_dict())


@api.route('/auth/firebase', methods=['POST'])
def login_firebase():
    user = authenticate_id_token(_body().get('idToken'))
    login_user(user)
    return jsonify(user.to_dict())


@api.route('/auth/logout', methods=['POST'])
def logout():
    logout_user()
    return _success()


@api.route('/auth/session')
def session_user():
    user = current_user()
    return jsonify({'user': user.to_dict() if user else None})


@api.route('/user')
def get_user():
    user = db.session.get(User, request.args.get('uid', ''))
    if user is None:
        raise NotFoundError('User not found')
    return jsonify(user.to_dict())


@api.route('/topics')
def get_topics():
    return jsonify({'data': services.list_topics()})


# ------------------ Problems ------------------

@api.route('/problems')
def get_problems():
    args = request.args
    problems, pagination = services.list_problems(
        topic=args.get('topic'),
        sub_topic=args.get('subTopic'),
        search=args.get('search'),
        sort=args.get('sort', 'newest'),
        page=args.get('page', 1),
    )
    user = current_user()
    return jsonify({
        'data': [services.problem_payload(p, user) for p in problems],
        'pagination': pagination,
    })


@api.route('/problem', methods=['GET'])
def get_problem():
    problem = services.get_problem(request.args.get('id'), count_view=True)
    return jsonify(services.problem_payload(problem, current_user()))


@api.route('/problem', methods=['POST'])
@login_required
def post_problem():
    problem = services.create_problem(_body(), current_user())
    return _success(id=problem.id), 201


@api.route('/problem', methods=['PATCH'])
@login_required
def patch_problem():
    services.update_problem(_body(), current_user())
    return _success()


@api.route('/problem', methods=['DELETE'])
@login_required
def delete_problem():
    services.delete_problem(request.args.get('id'), current_user())
    return _success()


@api.route('/problem/answer', methods=['POST'])
def post_problem_answer():
    data = _body()
    verdict = services.check_problem_answer(data.get('id'), data.get('answer'), current_user())
    return jsonify({'verdict': verdict})


# ------------------ Comments ------------------

@api.route('/problem/comment', methods=['GET'])
def get_comments():
    return jsonify({'data': services.list_comments(request.args.get('problemId'))})


@api.route('/problem/comment/replies')
def get_replies():
    return jsonify({'data': services.list_replies(request.args.get('commentId'))})


@api.route('/problem/comment', methods=['POST'])
@login_required
def post_comment():
    comment = services.add_comment(_body(), current_user())
    return _success(id=comment.id), 201


# ------------------ Contests ------------------

@api.route('/contests')
def get_contests():
    status = request.args.get('status')
    if status not in services.CONTEST_STATUSES:
        status = None
    contests, pagination = services.list_contests(status=status, page=request.args.get('page', 1))
    return jsonify({
        'data': [services.contest_summary(c) for c in contests],
        'pagination': pagination,
    })


@api.route('/contest', methods=['GET'])
def get_contest():
    contest = services.get_contest(request.args.get('id'), count_view=True)
    return jsonify(services.contest_payload(contest, current_user()))


@api.route('/contest', methods=['POST'])
@login_required
def post_contest():
    contest = services.create_contest(_body(), current_user())
    return _success(id=contest.id), 201


@api.route('/contest', methods=['PATCH'])
@login_required
def patch_contest():
    services.update_contest(_body(), current_user())
    return _success()


@api.route('/contest', methods=['DELETE'])
@login_required
def delete_contest():
    services.delete_contest(request.args.get('id'), current_user())
    return _success()


@api.route('/contest/submit', methods=['POST'])
@login_required
def post_contest_submission():
    data = _body()
    result = services.submit_contest_answer(
        data.get('contestId'), data.get('problemId'), data.get('answer'), current_user()
    )
    return jsonify(result)


@api.route('/contest/submissions')
@login_required
def get_contest_submissions():
    contest = services.get_contest(request.args.get('id'))
    return jsonify({'data': services.user_contest_submissions(contest, current_user())})


@api.route('/contest/leaderboard')
def get_leaderboard():
    contest = services.get_contest(request.args.get('id'))
    return jsonify({'data': services.contest_leaderboard(contest)})
