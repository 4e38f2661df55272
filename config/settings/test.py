"""
Test settings: SQLite on disk, local memory cache, eager Celery.
"""

from .base import *

DEBUG = False

SECRET_KEY = "test-secret-key-for-the-loyalty-ledger-suite-0123456789"

# A file database (not :memory:) so threads in the concurrency tests share it.
# IMMEDIATE transactions take the write lock up front, which serializes
# concurrent ledger appends the way row locks do on PostgreSQL.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",
        "OPTIONS": {
            "timeout": 20,
            "transaction_mode": "IMMEDIATE",
        },
        "TEST": {
            "NAME": BASE_DIR / "test_db.sqlite3",
        },
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "loyalty-tests",
    }
}

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

LOGGING["loggers"]["loyalty"]["level"] = "WARNING"
