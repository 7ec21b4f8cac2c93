from datetime import datetime

import pytest

from validation import parse_contest_problems, parse_timestamp, validate_contest_form, validate_problem_form


def test_parse_timestamp_formats():
    expected = datetime(2024, 5, 1, 10, 0)
    assert parse_timestamp(1714557600000) == expected
    assert parse_timestamp('1714557600000') == expected
    assert parse_timestamp('2024-05-01T10:00:00Z') == expected
    assert parse_timestamp('2024-05-01T12:00:00+02:00') == expected
    assert parse_timestamp('2024-05-01T10:00') == expected


@pytest.mark.parametrize('value', [None, '', 'tomorrow'])
def test_parse_timestamp_rejects(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_parse_contest_problems_shapes():
    assert parse_contest_problems([{'problem': {'id': 3}, 'score': 5}]) == [(3, 5)]
    assert parse_contest_problems({'a': {'problemId': '4', 'score': '2'}}) == [(4, 2)]
    assert parse_contest_problems('[{"problem": {"id": 1}, "score": 1}]') == [(1, 1)]
    assert parse_contest_problems('7###10\n\n8 ### 20\n') == [(7, 10), (8, 20)]
    assert parse_contest_problems('') == []


@pytest.mark.parametrize('raw', ['7-10', '7###ten', [{'problem': {'id': 1}, 'score': True}], ['x']])
def test_parse_contest_problems_rejects(raw):
    with pytest.raises(ValueError):
        parse_contest_problems(raw)


def test_problem_form(app):
    with app.app_context():
        valid = {
            'title': 'Hypotenuse',
            'statement': 'Legs 3 and 4.',
            'type': 'numeric',
            'answer': '5',
            'topicId': 'geometry',
            'subTopicId': 'plane',
        }
        assert validate_problem_form(valid) == {}

        errors = validate_problem_form({**valid, 'title': 'x' * 101, 'answer': 'five', 'subTopicId': 'primes'})
        assert set(errors) == {'title', 'answer', 'subTopicId'}

        errors = validate_problem_form({'type': 'essay'})
        assert set(errors) == {'title', 'statement', 'type', 'topicId'}


def test_contest_form(app, make_problem):
    first = make_problem('admin', title='One')
    second = make_problem('admin', title='Two')
    with app.app_context():
        data = {
            'title': 'Round',
            'description': 'Two problems',
            'startAt': '2024-05-01T10:00:00Z',
            'endAt': '2024-05-01T12:00:00Z',
            'problems': f'{first}###3\n{second}###5',
        }
        errors, cleaned = validate_contest_form(data)
        assert errors == {}
        assert cleaned['problems'] == [(first, 3), (second, 5)]
        assert cleaned['end_at'] == datetime(2024, 5, 1, 12, 0)

        errors, _ = validate_contest_form({**data, 'endAt': data['startAt']})
        assert 'endAt' in errors

        errors, _ = validate_contest_form({**data, 'problems': f'{first}###3\n{first}###5'})
        assert errors['problems'] == 'A problem can only appear once.'

        errors, _ = validate_contest_form({**data, 'problems': f'{first}###0'})
        assert errors['problems'] == 'Scores must be positive integers.'

        errors, _ = validate_contest_form({**data, 'problems': '999###1'})
        assert errors['problems'] == 'Unknown problems: 999.'

        errors, _ = validate_contest_form({**data, 'problems': ''})
        assert errors['problems'] == 'A contest needs at least one problem.'

        errors, _ = validate_contest_form({**data, 'topicId': 'cooking'})
        assert errors == {'topicId': 'Unknown topic.'}
