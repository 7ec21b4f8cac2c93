"""
Answer normalisation and checking for the three problem types.

``short_answer`` answers are free text, ``numeric`` answers are numbers and
``matrix`` answers are rectangular grids of cells. Stored answers live in the
database as JSON; submitted answers may come from a JSON body or a plain
HTML form, so every parser accepts both shapes.
"""
import json
import math
import re

from errors import ValidationError
from models import PROBLEM_TYPES

NUMERIC_TOLERANCE = 1e-9

# Empty answer per type, used to pre-fill answer forms
ANSWER_DEFAULT_VALUES = {
    'short_answer': '',
    'numeric': '',
    'matrix': [['']],
}

_WHITESPACE = re.compile(r'\s+')


def _normalise_text(value):
    return _WHITESPACE.sub(' ', str(value)).strip().lower()


def _parse_number(value):
    if isinstance(value, bool):
        raise ValueError('booleans are not numbers')
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        number = float(str(value).strip().replace(',', '.'))
    if math.isnan(number) or math.isinf(number):
        raise ValueError('number must be finite')
    return number


def _parse_matrix(value):
    if isinstance(value, str):
        text = value.strip()
        if text.startswith('['):
            value = json.loads(text)
        else:
            # One row per line, cells separated by whitespace or commas
            value = [re.split(r'[\s,]+', line.strip()) for line in text.splitlines() if line.strip()]

    if not isinstance(value, list) or not value:
        raise ValueError('matrix must have at least one row')

    rows = []
    for row in value:
        if not isinstance(row, list) or not row:
            raise ValueError('matrix rows must be non-empty lists')
        rows.append([str(cell).strip() for cell in row])

    width = len(rows[0])
    if any(len(row) != width for row in rows):
        raise ValueError('matrix rows must have the same length')
    return rows


def parse_answer(problem_type, raw):
    """Normalise ``raw`` for ``problem_type``; raises ValueError when malformed."""
    if problem_type not in PROBLEM_TYPES:
        raise ValidationError({'type': f'Unknown problem type: {problem_type}'})

    if raw is None:
        raise ValueError('answer is required')

    if problem_type == 'numeric':
        return _parse_number(raw)
    if problem_type == 'matrix':
        return _parse_matrix(raw)

    text = str(raw).strip()
    if not text:
        raise ValueError('answer is required')
    return text


def _cells_equal(expected, given):
    try:
        return math.isclose(_parse_number(expected), _parse_number(given),
                            rel_tol=NUMERIC_TOLERANCE, abs_tol=NUMERIC_TOLERANCE)
    except ValueError:
        return _normalise_text(expected) == _normalise_text(given)


def validate_answer(problem_type, expected, given):
    """Return True when ``given`` matches the stored ``expected`` answer."""
    try:
        expected = parse_answer(problem_type, expected)
        given = parse_answer(problem_type, given)
    except ValueError:
        return False

    if problem_type == 'numeric':
        return math.isclose(expected, given, rel_tol=NUMERIC_TOLERANCE, abs_tol=NUMERIC_TOLERANCE)

    if problem_type == 'matrix':
        if len(expected) != len(given) or len(expected[0]) != len(given[0]):
            return False
        return all(
            _cells_equal(e, g)
            for expected_row, given_row in zip(expected, given)
            for e, g in zip(expected_row, given_row)
        )

    return _normalise_text(expected) == _normalise_text(given)


def format_answer(problem_type, answer):
    """Render a stored answer back into the text an edit form expects."""
    if problem_type == 'matrix':
        return '\n'.join(' '.join(str(cell) for cell in row) for row in answer)
    if problem_type == 'numeric' and isinstance(answer, float) and answer.is_integer():
        return str(int(answer))
    return str(answer)
