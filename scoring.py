"""
Contest status, per-attempt scoring and leaderboard aggregation.

Submissions are merged per user and per problem, then participants are
sorted for display. Everything here works on plain dicts so the same code
serves the JSON API, the HTML views and the tests.
"""
from answers import validate_answer

WAITING = 'waiting'
ONGOING = 'ongoing'
CLOSED = 'closed'


def contest_status(start_at, end_at, now):
    if now < start_at:
        return WAITING
    if now > end_at:
        return CLOSED
    return ONGOING


def score_attempt(problem_type, expected, given, max_score):
    """Full score for a correct answer, nothing otherwise."""
    return max_score if validate_answer(problem_type, expected, given) else 0


def summarize_problem(problem_id, attempts):
    """Collapse one user's attempts at one problem into a single entry."""
    attempts = sorted(attempts, key=lambda a: a['submittedAt'])
    official = [a for a in attempts if a.get('official', True)]
    unofficial = [a for a in attempts if not a.get('official', True)]

    entry = {
        'problemId': problem_id,
        'attempts': [
            {
                'score': a['score'],
                'answer': a.get('answer'),
                'submittedAt': a['submittedAt'],
                'official': a.get('official', True),
            }
            for a in attempts
        ],
        'score': max((a['score'] for a in official), default=0),
    }

    if unofficial:
        entry['unofficialScore'] = max(a['score'] for a in attempts)
        entry['unofficialCount'] = len(unofficial)

    # Time of the official attempt that first reached the best score
    best = entry['score']
    entry['scoredAt'] = next((a['submittedAt'] for a in official if best > 0 and a['score'] == best), None)
    return entry


def group_submissions(rows):
    """
    Merge flat submission rows into ``{userId: {problemId: entry}}``.

    Each row needs ``userId``, ``problemId``, ``score``, ``submittedAt`` and
    ``official``; ``answer`` is carried along when present.
    """
    buckets = {}
    for row in rows:
        buckets.setdefault(row['userId'], {}).setdefault(row['problemId'], []).append(row)

    return {
        user_id: {
            problem_id: summarize_problem(problem_id, attempts)
            for problem_id, attempts in problems.items()
        }
        for user_id, problems in buckets.items()
    }


def problem_display_score(entry):
    if entry is None:
        return None
    return entry.get('unofficialScore', entry['score'])


def is_unofficial_only(entry):
    if entry is None:
        return False
    return entry['score'] == 0 and bool(entry.get('unofficialCount') or entry.get('unofficialScore'))


def _sort_key(participant):
    last = participant['lastScoredAt']
    # Participants without an official score go after everyone who has one
    return (-participant['totalScore'], -participant['unofficialScore'],
            last is None, last or 0)


def rank_participants(grouped, problem_order=None):
    """
    Turn grouped submissions into an ordered leaderboard.

    ``problem_order`` (a list of problem ids) fixes the order of each
    participant's ``answers``; problems outside it are appended by id.
    """
    participants = []
    for user_id, problems in grouped.items():
        order = list(problem_order or [])
        order += sorted(pid for pid in problems if pid not in order)
        answers = [problems[pid] for pid in order if pid in problems]

        scored_times = [a['scoredAt'] for a in answers if a.get('scoredAt') is not None]
        participants.append({
            'userId': user_id,
            'totalScore': sum(a['score'] for a in answers),
            'unofficialScore': sum(a.get('unofficialScore', a['score']) for a in answers),
            'answers': answers,
            'lastScoredAt': max(scored_times) if scored_times else None,
        })

    participants.sort(key=lambda p: (_sort_key(p), p['userId']))

    previous_key = None
    for position, participant in enumerate(participants, start=1):
        key = _sort_key(participant)
        participant['rank'] = participants[position - 2]['rank'] if key == previous_key else position
        previous_key = key

    return participants


def build_leaderboard(rows, problem_order=None):
    return rank_participants(group_submissions(rows), problem_order)
