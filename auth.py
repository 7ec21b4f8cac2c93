import logging
import re
from functools import wraps

from flask import current_app, flash, g, redirect, request, session, url_for
from werkzeug.security import check_password_hash, generate_password_hash

from errors import AuthenticationRequired, ConflictError, PermissionDenied, ValidationError
from models import User, db
from validation import clean_text

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.-]{3,40}$')
PASSWORD_MIN_LENGTH = 6


def current_user():
    """The signed-in user for this request, or None."""
    if 'current_user' not in g:
        user_id = session.get('user_id')
        g.current_user = db.session.get(User, user_id) if user_id else None
    return g.current_user


def login_user(user):
    session.clear()
    session.permanent = True
    session['user_id'] = user.id
    session['role'] = user.role
    g.current_user = user
    logger.info(f'User login successful: {user.id}')


def logout_user():
    username = session.get('user_id', 'Unknown')
    session.clear()
    g.pop('current_user', None)
    logger.info(f'User logged out: {username}')


def login_required(view):
    """JSON endpoints answer 401, page views bounce to the login form."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        if current_user() is None:
            if request.blueprint == 'api':
                raise AuthenticationRequired()
            flash('Login required', 'error')
            return redirect(url_for('views.login_page', next=request.path))
        return view(*args, **kwargs)
    return wrapped


def can_modify(user, author_id):
    return user is not None and (user.id == author_id or user.is_admin)


def require_author(user, author_id):
    if user is None:
        raise AuthenticationRequired()
    if not can_modify(user, author_id):
        raise PermissionDenied('Only the author or an administrator can do that.')


def authenticate(username, password):
    user = db.session.get(User, clean_text(username))
    if user is None or not user.password_hash or not isinstance(password, str):
        return None
    if not check_password_hash(user.password_hash, password):
        return None
    return user


def register_user(data):
    username = clean_text(data.get('username'))
    name = clean_text(data.get('name')) or username
    email = clean_text(data.get('email')).lower() or None
    password = data.get('password')
    if not isinstance(password, str):
        password = ''

    errors = {}
    if not USERNAME_PATTERN.match(username):
        errors['username'] = 'Username must be 3-40 letters, digits, dots, dashes or underscores.'
    if email is not None and '@' not in email:
        errors['email'] = 'This email is invalid.'
    if len(password) < PASSWORD_MIN_LENGTH:
        errors['password'] = 'The password is too weak.'
    if errors:
        raise ValidationError(errors)

    if db.session.get(User, username) is not None:
        raise ConflictError('This username is already used.', {'username': 'This username is already used.'})
    if email and User.query.filter_by(email=email).first() is not None:
        raise ConflictError('This email is already used.', {'email': 'This email is already used.'})

    user = User(id=username, name=name, email=email, password_hash=generate_password_hash(password))
    db.session.add(user)
    db.session.commit()
    logger.info(f'Registered new user: {username}')
    return user


def ensure_admin_account():
    """Creates the configured administrator on first start."""
    username = current_app.config['ADMIN_USERNAME']
    admin = db.session.get(User, username)
    if admin is None:
        admin = User(
            id=username,
            name='Administrator',
            role='admin',
            password_hash=generate_password_hash(current_app.config['ADMIN_PASSWORD']),
        )
        db.session.add(admin)
        db.session.commit()
        logger.info(f'Created administrator account: {username}')
    return admin
