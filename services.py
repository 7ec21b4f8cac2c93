"""
Domain operations shared by the JSON API and the HTML views.

Each function validates its input, talks to the ORM and raises one of the
``errors`` exceptions on failure; callers decide how to present them.
"""
import json
import logging
from datetime import datetime

from flask import current_app, session

from answers import parse_answer, validate_answer
from auth import can_modify, require_author
from errors import ConflictError, CooldownError, NotFoundError, PermissionDenied, ValidationError
from models import (Comment, Contest, ContestProblem, Problem, ProblemSolve, Submission, Topic,
                    db, isoformat, utcnow)
from pagination import page_bounds
from scoring import CLOSED, ONGOING, WAITING, build_leaderboard, contest_status, group_submissions, score_attempt
from validation import clean_text, validate_contest_form, validate_problem_form

logger = logging.getLogger(__name__)

PROBLEM_SORTS = ('newest', 'oldest', 'most-solved', 'least-solved')
CONTEST_STATUSES = (WAITING, ONGOING, CLOSED)


def _to_id(value, label='id'):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError({label: f'{label} must be an integer'})


def serialize(value):
    """Recursively converts datetimes inside dicts/lists to ISO strings."""
    if isinstance(value, datetime):
        return isoformat(value)
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize(v) for v in value]
    return value


# ------------------ Topics ------------------

def list_topics():
    return [topic.to_dict(with_sub_topics=True) for topic in Topic.query.order_by(Topic.id).all()]


# ------------------ Problems ------------------

def list_problems(topic=None, sub_topic=None, search=None, sort='newest', page=1, per_page=None):
    """Returns ``(problems, pagination)`` for the filtered, sorted page."""
    per_page = per_page or current_app.config['PROBLEM_PAGINATION_COUNT']
    if sort not in PROBLEM_SORTS:
        sort = 'newest'

    query = Problem.query
    if topic:
        query = query.filter(Problem.topic_id == topic)
    if sub_topic:
        query = query.filter(Problem.sub_topic_id == sub_topic)
    if search:
        query = query.filter(Problem.title.ilike(f'%{search.strip()}%'))

    if sort in ('most-solved', 'least-solved'):
        solved = db.func.count(ProblemSolve.id)
        query = query.outerjoin(ProblemSolve, ProblemSolve.problem_id == Problem.id).group_by(Problem.id)
        query = query.order_by(solved.desc() if sort == 'most-solved' else solved.asc(), Problem.id.desc())
    elif sort == 'oldest':
        query = query.order_by(Problem.created_at.asc(), Problem.id.asc())
    else:
        query = query.order_by(Problem.created_at.desc(), Problem.id.desc())

    bounds = page_bounds(query.count(), page, per_page)
    problems = query.limit(per_page).offset((bounds['current_page'] - 1) * per_page).all()
    return problems, bounds


def get_problem(problem_id, count_view=False):
    problem = db.session.get(Problem, _to_id(problem_id))
    if problem is None:
        raise NotFoundError('Problem not found')
    if count_view:
        problem.views += 1
        db.session.commit()
    return problem


def problem_payload(problem, user):
    data = problem.to_dict(include_answer=can_modify(user, problem.author_id))
    data['solvedByMe'] = bool(user) and any(s.user_id == user.id for s in problem.solves)
    return data


def _apply_problem_fields(problem, data):
    problem.title = clean_text(data['title'])
    problem.statement = clean_text(data['statement'])
    problem.type = data['type']
    problem.answer = json.dumps(parse_answer(data['type'], data['answer']))
    problem.topic_id = clean_text(data['topicId'])
    problem.sub_topic_id = clean_text(data['subTopicId'])


def create_problem(data, user):
    errors = validate_problem_form(data)
    if errors:
        raise ValidationError(errors)

    problem = Problem(author_id=user.id)
    _apply_problem_fields(problem, data)
    db.session.add(problem)
    db.session.commit()
    logger.info(f'{user.id} created problem {problem.id}: {problem.title}')
    return problem


def update_problem(data, user):
    problem = get_problem(data.get('id'))
    require_author(user, problem.author_id)

    merged = {
        'title': problem.title,
        'statement': problem.statement,
        'type': problem.type,
        'answer': problem.decoded_answer,
        'topicId': problem.topic_id,
        'subTopicId': problem.sub_topic_id,
    }
    merged.update({k: v for k, v in data.items() if k in merged and v is not None})

    errors = validate_problem_form(merged)
    if errors:
        raise ValidationError(errors)

    _apply_problem_fields(problem, merged)
    problem.updated_at = utcnow()
    db.session.commit()
    logger.info(f'{user.id} updated problem {problem.id}')
    return problem


def delete_problem(problem_id, user):
    problem = get_problem(problem_id)
    require_author(user, problem.author_id)

    if ContestProblem.query.filter_by(problem_id=problem.id).first() is not None:
        raise ConflictError('This problem is used in a contest and cannot be deleted.')

    db.session.delete(problem)
    db.session.commit()
    logger.info(f'{user.id} deleted problem {problem_id}')


def _remaining_cooldown(last_wrong_at, now):
    cooldown = current_app.config['SUBMISSION_COOLDOWN_SECONDS']
    if last_wrong_at is None or cooldown <= 0:
        return 0
    return max(0.0, cooldown - (now - last_wrong_at).total_seconds())


def check_problem_answer(problem_id, answer, user, now=None):
    """
    Practice answer check outside contests. Wrong answers start a cooldown kept
    in the session; a correct answer records a solve for signed-in users.
    """
    now = now or utcnow()
    problem = get_problem(problem_id)
    cooldown_key = f'answer_wrong_{problem.id}'

    last_wrong = session.get(cooldown_key)
    remaining = _remaining_cooldown(datetime.fromisoformat(last_wrong) if last_wrong else None, now)
    if remaining > 0:
        raise CooldownError(remaining)

    verdict = validate_answer(problem.type, problem.decoded_answer, answer)
    if not verdict:
        session[cooldown_key] = now.isoformat()
        return False

    session.pop(cooldown_key, None)
    if user is not None and ProblemSolve.query.filter_by(user_id=user.id, problem_id=problem.id).first() is None:
        db.session.add(ProblemSolve(user_id=user.id, problem_id=problem.id, solved_at=now))
        db.session.commit()
        logger.info(f'{user.id} solved problem {problem.id}')
    return True


# ------------------ Contests ------------------

def list_contests(status=None, page=1, per_page=None, now=None):
    now = now or utcnow()
    per_page = per_page or current_app.config['CONTEST_PAGINATION_COUNT']

    query = Contest.query
    if status == WAITING:
        query = query.filter(Contest.start_at > now)
    elif status == ONGOING:
        query = query.filter(Contest.start_at <= now, Contest.end_at >= now)
    elif status == CLOSED:
        query = query.filter(Contest.end_at < now)
    query = query.order_by(Contest.start_at.desc(), Contest.id.desc())

    bounds = page_bounds(query.count(), page, per_page)
    contests = query.limit(per_page).offset((bounds['current_page'] - 1) * per_page).all()
    return contests, bounds


def get_contest(contest_id, count_view=False):
    contest = db.session.get(Contest, _to_id(contest_id))
    if contest is None:
        raise NotFoundError('Contest not found')
    if count_view:
        contest.views += 1
        db.session.commit()
    return contest


def contest_summary(contest, now=None):
    now = now or utcnow()
    return {
        'id': contest.id,
        'title': contest.title,
        'description': contest.description,
        'authorId': contest.author_id,
        'topic': contest.topic.to_dict() if contest.topic else None,
        'subTopic': contest.sub_topic.to_dict() if contest.sub_topic else None,
        'startAt': isoformat(contest.start_at),
        'endAt': isoformat(contest.end_at),
        'createdAt': isoformat(contest.created_at),
        'updatedAt': isoformat(contest.updated_at),
        'views': contest.views,
        'participants': contest.participants,
        'problemsCount': len(contest.to_problems),
        'status': contest_status(contest.start_at, contest.end_at, now),
    }


def contest_payload(contest, user, now=None):
    """Contest detail; problems are hidden before the start and answers masked for viewers."""
    data = contest_summary(contest, now)
    authorized = can_modify(user, contest.author_id)

    if not authorized and data['status'] == WAITING:
        data['problemsData'] = []
    else:
        data['problemsData'] = [cp.to_dict(include_answer=authorized) for cp in contest.to_problems]
    return data


def _set_contest_problems(contest, problems):
    contest.to_problems = [
        ContestProblem(problem_id=problem_id, score=score, order=index)
        for index, (problem_id, score) in enumerate(problems)
    ]


def create_contest(data, user):
    errors, cleaned = validate_contest_form(data)
    if errors:
        raise ValidationError(errors)

    contest = Contest(
        author_id=user.id,
        title=clean_text(data['title']),
        description=clean_text(data['description']),
        topic_id=clean_text(data.get('topicId')) or None,
        sub_topic_id=clean_text(data.get('subTopicId')) or None,
        start_at=cleaned['start_at'],
        end_at=cleaned['end_at'],
    )
    _set_contest_problems(contest, cleaned['problems'])
    db.session.add(contest)
    db.session.commit()
    logger.info(f'{user.id} created contest {contest.id}: {contest.title}')
    return contest


def update_contest(data, user):
    contest = get_contest(data.get('id'))
    require_author(user, contest.author_id)

    merged = {
        'title': contest.title,
        'description': contest.description,
        'topicId': contest.topic_id,
        'subTopicId': contest.sub_topic_id,
        'startAt': isoformat(contest.start_at),
        'endAt': isoformat(contest.end_at),
        'problems': [{'problem': {'id': cp.problem_id}, 'score': cp.score} for cp in contest.to_problems],
    }
    merged.update({k: v for k, v in data.items() if k in merged and v not in (None, '')})

    errors, cleaned = validate_contest_form(merged)
    if errors:
        raise ValidationError(errors)

    try:
        contest.title = clean_text(merged['title'])
        contest.description = clean_text(merged['description'])
        contest.topic_id = clean_text(merged['topicId']) or None
        contest.sub_topic_id = clean_text(merged['subTopicId']) or None
        contest.start_at = cleaned['start_at']
        contest.end_at = cleaned['end_at']
        # Old links go first so the unique (contest, problem) pairs can be reused
        contest.to_problems = []
        db.session.flush()
        _set_contest_problems(contest, cleaned['problems'])
        # Attempts at problems that left the contest stop counting
        kept = {problem_id for problem_id, _ in cleaned['problems']}
        dropped = [s for s in contest.submissions if s.problem_id not in kept]
        for submission in dropped:
            contest.submissions.remove(submission)
        contest.updated_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f'{user.id} updated contest {contest.id} ({len(dropped)} stale submissions removed)')
    return contest


def delete_contest(contest_id, user):
    contest = get_contest(contest_id)
    require_author(user, contest.author_id)
    db.session.delete(contest)
    db.session.commit()
    logger.info(f'{user.id} deleted contest {contest_id}')


# ------------------ Submissions & leaderboard ------------------

def submit_contest_answer(contest_id, problem_id, answer, user, now=None):
    """
    Scores one answer. Answers during the contest are official, answers after it
    closes are recorded as unofficial.
    """
    now = now or utcnow()
    contest = get_contest(contest_id)
    status = contest_status(contest.start_at, contest.end_at, now)
    if status == WAITING:
        raise PermissionDenied('The contest has not started yet.')

    problem_id = _to_id(problem_id, 'problemId')
    link = ContestProblem.query.filter_by(contest_id=contest.id, problem_id=problem_id).first()
    if link is None:
        raise NotFoundError('This problem is not part of the contest.')

    official = status == ONGOING
    previous = (Submission.query
                .filter_by(contest_id=contest.id, problem_id=problem_id, user_id=user.id)
                .order_by(Submission.submitted_at.asc(), Submission.id.asc())
                .all())

    if any(s.score > 0 and (s.official or not official) for s in previous):
        raise ConflictError('You already solved this problem.')

    if previous and previous[-1].score == 0:
        remaining = _remaining_cooldown(previous[-1].submitted_at, now)
        if remaining > 0:
            raise CooldownError(remaining)

    problem = link.problem
    try:
        parsed = parse_answer(problem.type, answer)
    except ValueError as e:
        raise ValidationError({'answer': f'Invalid answer: {e}'})

    score = score_attempt(problem.type, problem.decoded_answer, parsed, link.score)
    submission = Submission(
        contest_id=contest.id,
        problem_id=problem_id,
        user_id=user.id,
        answer=json.dumps(parsed),
        score=score,
        official=official,
        submitted_at=now,
    )
    db.session.add(submission)
    db.session.commit()
    logger.info(f'{user.id} answered problem {problem_id} in contest {contest.id}: '
                f'score {score} ({"official" if official else "unofficial"})')
    return {'correct': score > 0, 'score': score, 'official': official}


def _problem_order(contest):
    return [cp.problem_id for cp in contest.to_problems]


def contest_leaderboard(contest):
    """Ranked participants; attempt answers are left out so nothing leaks mid-contest."""
    rows = [s.to_row() for s in contest.submissions]
    participants = build_leaderboard(rows, _problem_order(contest))
    for participant in participants:
        for entry in participant['answers']:
            for attempt in entry['attempts']:
                attempt.pop('answer', None)
    return serialize(participants)


def user_contest_submissions(contest, user):
    rows = [s.to_row() for s in contest.submissions if s.user_id == user.id]
    return serialize(group_submissions(rows).get(user.id, {}))


# ------------------ Comments ------------------

def list_comments(problem_id):
    problem = get_problem(problem_id)
    comments = (Comment.query
                .filter_by(problem_id=problem.id, parent_id=None)
                .order_by(Comment.created_at.asc(), Comment.id.asc())
                .all())
    return [c.to_dict() for c in comments]


def list_replies(comment_id):
    parent = db.session.get(Comment, _to_id(comment_id, 'commentId'))
    if parent is None:
        raise NotFoundError('Comment not found')
    replies = sorted(parent.children, key=lambda c: (c.created_at, c.id))
    return [c.to_dict() for c in replies]


def list_contest_comments(contest):
    problem_ids = _problem_order(contest)
    if not problem_ids:
        return []
    comments = (Comment.query
                .filter(Comment.problem_id.in_(problem_ids), Comment.parent_id.is_(None))
                .order_by(Comment.created_at.desc(), Comment.id.desc())
                .all())
    return [c.to_dict() for c in comments]


def add_comment(data, user):
    problem = get_problem(data.get('problemId'))
    text = clean_text(data.get('comment'))
    if not text:
        raise ValidationError({'comment': 'Comment cannot be empty.'})

    parent_id = data.get('commentId')
    if parent_id:
        parent = db.session.get(Comment, _to_id(parent_id, 'commentId'))
        if parent is None or parent.problem_id != problem.id:
            raise NotFoundError('Parent comment not found')
        parent_id = parent.id

    comment = Comment(problem_id=problem.id, author_id=user.id, description=text, parent_id=parent_id or None)
    db.session.add(comment)
    db.session.commit()
    logger.info(f'{user.id} commented on problem {problem.id}')
    return comment
