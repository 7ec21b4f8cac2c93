import json
import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from models import Problem, SubTopic, Topic, User, db

logger = logging.getLogger(__name__)

DEFAULT_TOPICS = {
    'algebra': ('Algebra', {'equations': 'Equations', 'matrices': 'Matrices', 'polynomials': 'Polynomials'}),
    'geometry': ('Geometry', {'plane': 'Plane Geometry', 'trigonometry': 'Trigonometry'}),
    'number-theory': ('Number Theory', {'divisibility': 'Divisibility', 'primes': 'Primes'}),
    'combinatorics': ('Combinatorics', {'counting': 'Counting', 'probability': 'Probability'}),
}

SAMPLE_PROBLEMS = [
    {
        'title': 'Sum of the First Hundred',
        'statement': 'Compute $1 + 2 + \\cdots + 100$.',
        'type': 'numeric',
        'answer': 5050,
        'topic': 'algebra',
        'sub_topic': 'equations',
    },
    {
        'title': 'Identity Matrix',
        'statement': 'Write the **2 x 2** identity matrix.',
        'type': 'matrix',
        'answer': [['1', '0'], ['0', '1']],
        'topic': 'algebra',
        'sub_topic': 'matrices',
    },
    {
        'title': 'Right Triangle',
        'statement': 'The legs of a right triangle are 3 and 4. How long is the hypotenuse?',
        'type': 'numeric',
        'answer': 5,
        'topic': 'geometry',
        'sub_topic': 'plane',
    },
    {
        'title': 'Smallest Prime',
        'statement': 'Name the smallest prime number, in words.',
        'type': 'short_answer',
        'answer': 'two',
        'topic': 'number-theory',
        'sub_topic': 'primes',
    },
    {
        'title': 'Bookshelf',
        'statement': 'In how many ways can 3 different books be arranged on a shelf?',
        'type': 'numeric',
        'answer': 6,
        'topic': 'combinatorics',
        'sub_topic': 'counting',
    },
]


def seed_topics():
    """Inserts any missing default topic or subtopic."""
    created = 0
    for topic_id, (topic_name, sub_topics) in DEFAULT_TOPICS.items():
        if db.session.get(Topic, topic_id) is None:
            db.session.add(Topic(id=topic_id, name=topic_name))
            created += 1
        for sub_id, sub_name in sub_topics.items():
            if db.session.get(SubTopic, sub_id) is None:
                db.session.add(SubTopic(id=sub_id, name=sub_name, topic_id=topic_id))
                created += 1
    if created:
        db.session.commit()
        logger.info(f'Initialized {created} topics and subtopics.')
    return created


def populate_problems(author_id):
    """Adds the sample problems that are not in the database yet."""
    seed_topics()
    added = 0
    for sample in SAMPLE_PROBLEMS:
        if Problem.query.filter_by(title=sample['title']).first() is not None:
            continue
        db.session.add(Problem(
            title=sample['title'],
            statement=sample['statement'],
            type=sample['type'],
            answer=json.dumps(sample['answer']),
            topic_id=sample['topic'],
            sub_topic_id=sample['sub_topic'],
            author_id=author_id,
        ))
        added += 1
    db.session.commit()
    logger.info(f'Populated {added} sample problems.')
    return added


@click.command('populate')
@with_appcontext
def populate_command():
    """Insert the sample problems, authored by the administrator."""
    admin_id = current_app.config['ADMIN_USERNAME']
    if db.session.get(User, admin_id) is None:
        raise click.ClickException(f'Administrator {admin_id!r} does not exist.')
    added = populate_problems(admin_id)
    click.echo(f'Added {added} sample problems.')
