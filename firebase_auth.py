import logging

import requests
from flask import current_app

from errors import AuthenticationRequired, PlatformError
from models import User

logger = logging.getLogger(__name__)


class FirebaseUnavailable(PlatformError):
    status_code = 503


def lookup_firebase_uid(id_token):
    """
    Verifies a Firebase ID token with the Identity Toolkit REST API
    and returns the account's uid.
    """
    api_key = current_app.config.get('FIREBASE_API_KEY')
    if not api_key:
        raise FirebaseUnavailable('Firebase sign-in is not configured.')

    try:
        response = requests.post(
            current_app.config['FIREBASE_LOOKUP_URL'],
            params={'key': api_key},
            json={'idToken': id_token},
            timeout=10
        )
    except requests.exceptions.Timeout:
        logger.error('Firebase token lookup timed out')
        raise FirebaseUnavailable('Authentication service timed out.')
    except requests.exceptions.RequestException as e:
        logger.error(f'Firebase token lookup failed: {e}')
        raise FirebaseUnavailable('Authentication service unavailable.')

    if response.status_code != 200:
        logger.info(f'Firebase rejected ID token: HTTP {response.status_code}')
        raise AuthenticationRequired('Invalid or expired ID token.')

    try:
        users = response.json().get('users') or []
    except (ValueError, AttributeError):
        logger.error('Firebase token lookup returned a non-JSON body')
        raise FirebaseUnavailable('Authentication service unavailable.')
    if not users or not users[0].get('localId'):
        raise AuthenticationRequired('Invalid or expired ID token.')
    return users[0]['localId']


def authenticate_id_token(id_token):
    """Maps a verified Firebase account onto a platform user with an id and a role."""
    if not id_token:
        raise AuthenticationRequired('An ID token is required.')

    uid = lookup_firebase_uid(id_token)
    user = User.query.filter_by(firebase_uid=uid).first()

    if user is None or not user.id or not user.role:
        logger.info(f'No platform account linked to Firebase uid {uid}')
        raise AuthenticationRequired('This account does not exist.')
    return user
