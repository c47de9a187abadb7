"""
Settings for the test suite: in-memory SQLite, fixed consultation knobs.
"""
from .settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CONSULTATION_SLOT_INTERVALS = (30, 60)
CONSULTATION_DEFAULT_SLOT_INTERVAL = 60
CONSULTATION_PERSISTENCE_RETRIES = 1
