import json
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import UniqueConstraint

db = SQLAlchemy()

PROBLEM_TYPES = ('short_answer', 'numeric', 'matrix')
ROLES = ('user', 'admin')


def utcnow():
    """Current UTC time as a naive datetime (SQLite drops tzinfo anyway)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    if value is None:
        return None
    return value.isoformat(timespec='milliseconds') + 'Z'


class User(db.Model):
    __tablename__ = 'users'

    # The username doubles as the public id
    id = db.Column(db.String(40), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=True)
    password_hash = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(20), nullable=False, default='user')
    firebase_uid = db.Column(db.String(128), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'role': self.role}

    def __repr__(self):
        return f'<User {self.id}>'


class Topic(db.Model):
    __tablename__ = 'topics'

    id = db.Column(db.String(40), primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    sub_topics = db.relationship('SubTopic', back_populates='topic', lazy=True, order_by='SubTopic.id')

    def to_dict(self, with_sub_topics=False):
        data = {'id': self.id, 'name': self.name}
        if with_sub_topics:
            data['subTopics'] = [sub.to_dict() for sub in self.sub_topics]
        return data


class SubTopic(db.Model):
    __tablename__ = 'sub_topics'

    id = db.Column(db.String(40), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    topic_id = db.Column(db.String(40), db.ForeignKey('topics.id'), nullable=False, index=True)

    topic = db.relationship('Topic', back_populates='sub_topics')

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'topicId': self.topic_id}


class Problem(db.Model):
    __tablename__ = 'problems'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(160), nullable=False)
    statement = db.Column(db.Text, nullable=False)
    # JSON encoded so matrix answers survive the round trip
    answer = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default='short_answer')
    topic_id = db.Column(db.String(40), db.ForeignKey('topics.id'), nullable=False, index=True)
    sub_topic_id = db.Column(db.String(40), db.ForeignKey('sub_topics.id'), nullable=False, index=True)
    author_id = db.Column(db.String(40), db.ForeignKey('users.id'), nullable=False, index=True)
    views = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    topic = db.relationship('Topic')
    sub_topic = db.relationship('SubTopic')
    author = db.relationship('User')
    solves = db.relationship('ProblemSolve', back_populates='problem', lazy=True,
                             cascade='all, delete-orphan')
    comments = db.relationship('Comment', back_populates='problem', lazy=True,
                               cascade='all, delete-orphan')

    @property
    def decoded_answer(self):
        return json.loads(self.answer)

    @property
    def solved_count(self):
        return len(self.solves)

    def to_dict(self, include_answer=True):
        return {
            'id': self.id,
            'title': self.title,
            'statement': self.statement,
            'type': self.type,
            'answer': self.decoded_answer if include_answer else '{}',
            'topic': self.topic.to_dict() if self.topic else None,
            'subTopic': self.sub_topic.to_dict() if self.sub_topic else None,
            'authorId': self.author_id,
            'views': self.views,
            'solved': self.solved_count,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Problem {self.id} {self.title!r}>'


class ProblemSolve(db.Model):
    __tablename__ = 'problem_solves'
    __table_args__ = (UniqueConstraint('user_id', 'problem_id', name='uq_solve_user_problem'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(40), db.ForeignKey('users.id'), nullable=False, index=True)
    problem_id = db.Column(db.Integer, db.ForeignKey('problems.id'), nullable=False, index=True)
    solved_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    problem = db.relationship('Problem', back_populates='solves')


class Contest(db.Model):
    __tablename__ = 'contests'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.String(40), db.ForeignKey('users.id'), nullable=False, index=True)
    topic_id = db.Column(db.String(40), db.ForeignKey('topics.id'), nullable=True)
    sub_topic_id = db.Column(db.String(40), db.ForeignKey('sub_topics.id'), nullable=True)
    start_at = db.Column(db.DateTime, nullable=False)
    end_at = db.Column(db.DateTime, nullable=False)
    views = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    topic = db.relationship('Topic')
    sub_topic = db.relationship('SubTopic')
    to_problems = db.relationship('ContestProblem', back_populates='contest', lazy=True,
                                  order_by='ContestProblem.order', cascade='all, delete-orphan')
    submissions = db.relationship('Submission', back_populates='contest', lazy=True,
                                  cascade='all, delete-orphan')

    @property
    def participants(self):
        return (db.session.query(db.func.count(db.distinct(Submission.user_id)))
                .filter(Submission.contest_id == self.id)
                .scalar())

    def __repr__(self):
        return f'<Contest {self.id} {self.title!r}>'


class ContestProblem(db.Model):
    __tablename__ = 'contest_problems'
    __table_args__ = (UniqueConstraint('contest_id', 'problem_id', name='uq_contest_problem'),)

    id = db.Column(db.Integer, primary_key=True)
    contest_id = db.Column(db.Integer, db.ForeignKey('contests.id'), nullable=False, index=True)
    problem_id = db.Column(db.Integer, db.ForeignKey('problems.id'), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False, default=1)
    order = db.Column(db.Integer, nullable=False, default=0)

    contest = db.relationship('Contest', back_populates='to_problems')
    problem = db.relationship('Problem')

    def to_dict(self, include_answer=True):
        return {
            'problem': self.problem.to_dict(include_answer=include_answer),
            'score': self.score,
            'order': self.order,
        }


class Submission(db.Model):
    __tablename__ = 'submissions'

    id = db.Column(db.Integer, primary_key=True)
    contest_id = db.Column(db.Integer, db.ForeignKey('contests.id'), nullable=False, index=True)
    problem_id = db.Column(db.Integer, db.ForeignKey('problems.id'), nullable=False)
    user_id = db.Column(db.String(40), db.ForeignKey('users.id'), nullable=False, index=True)
    answer = db.Column(db.Text, nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    official = db.Column(db.Boolean, nullable=False, default=True)
    submitted_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    contest = db.relationship('Contest', back_populates='submissions')

    def to_row(self):
        """Flat shape consumed by scoring.group_submissions."""
        return {
            'userId': self.user_id,
            'problemId': self.problem_id,
            'score': self.score,
            'answer': json.loads(self.answer),
            'submittedAt': self.submitted_at,
            'official': self.official,
        }


class Comment(db.Model):
    __tablename__ = 'comments'

    id = db.Column(db.Integer, primary_key=True)
    problem_id = db.Column(db.Integer, db.ForeignKey('problems.id'), nullable=False, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey('comments.id'), nullable=True, index=True)
    author_id = db.Column(db.String(40), db.ForeignKey('users.id'), nullable=False)
    description = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    problem = db.relationship('Problem', back_populates='comments')
    author = db.relationship('User')
    children = db.relationship('Comment', lazy=True, cascade='all, delete-orphan',
                               backref=db.backref('parent', remote_side=[id]))

    def to_dict(self):
        return {
            'id': self.id,
            'problemId': self.problem_id,
            'parentId': self.parent_id,
            'description': self.description,
            'author': {'id': self.author.id, 'name': self.author.name} if self.author else None,
            'replyCount': len(self.children),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
