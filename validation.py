import json
import logging
from datetime import datetime, timezone

from flask import current_app

from answers import parse_answer
from models import PROBLEM_TYPES, Problem, SubTopic, Topic, db

logger = logging.getLogger(__name__)


def parse_timestamp(value):
    """
    Accepts epoch milliseconds or an ISO-8601 string and returns a naive UTC datetime.
    Raises ValueError for anything else.
    """
    if value is None or value == '':
        raise ValueError('timestamp is required')

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)

    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc).replace(tzinfo=None)

    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def clean_text(value):
    """Stripped text of a form or JSON field; non-string values count as missing."""
    return value.strip() if isinstance(value, str) else ''


def _validate_topics(data, errors, required=True):
    topic_id = clean_text(data.get('topicId'))
    sub_topic_id = clean_text(data.get('subTopicId'))

    if not topic_id:
        if required:
            errors['topicId'] = 'Topic is required.'
        return
    if db.session.get(Topic, topic_id) is None:
        errors['topicId'] = 'Unknown topic.'
        return

    if not sub_topic_id:
        if required:
            errors['subTopicId'] = 'Subtopic is required.'
        return
    sub_topic = db.session.get(SubTopic, sub_topic_id)
    if sub_topic is None or sub_topic.topic_id != topic_id:
        errors['subTopicId'] = 'Subtopic does not belong to the topic.'


def validate_problem_form(data):
    """Returns a field -> message dict; empty when the problem is valid."""
    errors = {}
    title_max = current_app.config['PROBLEM_TITLE_MAX']

    title = clean_text(data.get('title'))
    if not title:
        errors['title'] = 'Title is required.'
    elif len(title) > title_max:
        errors['title'] = f'Title must be at most {title_max} characters.'

    if not clean_text(data.get('statement')):
        errors['statement'] = 'Statement is required.'

    problem_type = data.get('type')
    if problem_type not in PROBLEM_TYPES:
        errors['type'] = f"Type must be one of: {', '.join(PROBLEM_TYPES)}."
    else:
        try:
            parse_answer(problem_type, data.get('answer'))
        except ValueError as e:
            errors['answer'] = f'Invalid answer: {e}'

    _validate_topics(data, errors)
    return errors


def parse_contest_problems(raw):
    """
    Contest problems arrive either as a list of ``{"problem": {"id"}, "score"}``
    entries, as the JSON encoding of such a list/mapping, or as form text with
    one ``problemId###score`` pair per line.
    Returns a list of ``(problem_id, score)`` tuples; raises ValueError.
    """
    if raw is None or raw == '':
        return []

    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith('[') or text.startswith('{'):
            raw = json.loads(text)
        else:
            entries = []
            for i, line in enumerate(text.splitlines()):
                line = line.strip()
                if not line:
                    continue
                parts = line.split('###', 1)
                if len(parts) != 2:
                    raise ValueError(f"line {i + 1} must be 'problemId###score'")
                entries.append((parts[0].strip(), parts[1].strip()))
            return [(_to_int(pid, 'problem id'), _to_int(score, 'score')) for pid, score in entries]

    if isinstance(raw, dict):
        raw = list(raw.values())
    if not isinstance(raw, list):
        raise ValueError('problems must be a list')

    entries = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError('each problem entry must be an object')
        problem = entry.get('problem')
        pid = problem.get('id') if isinstance(problem, dict) else entry.get('problemId', problem)
        entries.append((_to_int(pid, 'problem id'), _to_int(entry.get('score'), 'score')))
    return entries


def _to_int(value, label):
    if isinstance(value, bool):
        raise ValueError(f'{label} must be an integer')
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f'{label} must be an integer')
    return number


def validate_contest_form(data):
    """Returns ``(errors, cleaned)``; ``cleaned`` holds parsed dates and problems."""
    errors = {}
    cleaned = {}
    problem_max = current_app.config['CONTEST_PROBLEM_MAX']

    if not clean_text(data.get('title')):
        errors['title'] = 'Title is required.'
    if not clean_text(data.get('description')):
        errors['description'] = 'Description is required.'

    for field, key in (('startAt', 'start_at'), ('endAt', 'end_at')):
        try:
            cleaned[key] = parse_timestamp(data.get(field))
        except (TypeError, ValueError, OverflowError, OSError):
            errors[field] = 'A valid date is required.'

    if 'start_at' in cleaned and 'end_at' in cleaned and cleaned['end_at'] <= cleaned['start_at']:
        errors['endAt'] = 'End date must be after the start date.'

    try:
        problems = parse_contest_problems(data.get('problems'))
    except ValueError as e:
        errors['problems'] = f'Invalid problem list: {e}'
        problems = None

    if problems is not None:
        ids = [pid for pid, _ in problems]
        if not problems:
            errors['problems'] = 'A contest needs at least one problem.'
        elif len(problems) > problem_max:
            errors['problems'] = f'A contest can have at most {problem_max} problems.'
        elif len(set(ids)) != len(ids):
            errors['problems'] = 'A problem can only appear once.'
        elif any(score <= 0 for _, score in problems):
            errors['problems'] = 'Scores must be positive integers.'
        else:
            found = {p.id for p in Problem.query.filter(Problem.id.in_(ids)).all()}
            missing = [str(pid) for pid in ids if pid not in found]
            if missing:
                errors['problems'] = f"Unknown problems: {', '.join(missing)}."
        cleaned['problems'] = problems

    _validate_topics(data, errors, required=False)

    if errors:
        logger.debug(f'Contest form rejected: {errors}')
    return errors, cleaned
