import os
from datetime import timedelta

from dotenv import load_dotenv

# Load environment variables FIRST so every constant below can be overridden
load_dotenv()

SECRET_KEY = os.getenv('SECRET_KEY', 'CHANGE_ME_CONTEST_PLATFORM_DEV_KEY')
PERMANENT_SESSION_LIFETIME = timedelta(days=1)

# ----- Database -----
_raw_db_url = os.getenv('DATABASE_URL', '')
if _raw_db_url.startswith('postgres://'):
    _raw_db_url = _raw_db_url.replace('postgres://', 'postgresql://', 1)

SQLALCHEMY_DATABASE_URI = _raw_db_url or 'sqlite:///contest_platform.db'
SQLALCHEMY_TRACK_MODIFICATIONS = False

# ----- Accounts -----
ADMIN_USERNAME = os.getenv('ADMIN_USERNAME', 'admin')
ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD', 'admin123456')

# Web API key of the Firebase project used for ID-token sign-in
FIREBASE_API_KEY = os.getenv('FIREBASE_API_KEY', '')
FIREBASE_LOOKUP_URL = 'https://identitytoolkit.googleapis.com/v1/accounts:lookup'

# ----- Content limits -----
PROBLEM_PAGINATION_COUNT = int(os.getenv('PROBLEM_PAGINATION_COUNT', 10))
CONTEST_PAGINATION_COUNT = int(os.getenv('CONTEST_PAGINATION_COUNT', 10))
CONTEST_PROBLEM_MAX = int(os.getenv('CONTEST_PROBLEM_MAX', 20))
PROBLEM_TITLE_MAX = 100

# Seconds a user waits after a wrong answer before answering again
SUBMISSION_COOLDOWN_SECONDS = float(os.getenv('SUBMISSION_COOLDOWN_SECONDS', 5))

API_FAIL_MESSAGE = 'Something went wrong. Please try again later.'

LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')
