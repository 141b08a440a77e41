"""Settings used by the test suite.

In-memory SQLite, local-memory email, Celery tasks executed inline and the
payment gateway in sandbox mode with fixed secrets.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PAYMENT_GATEWAY_KEY_ID = 'rzp_test_key'
PAYMENT_GATEWAY_KEY_SECRET = 'test-key-secret'
PAYMENT_GATEWAY_WEBHOOK_SECRET = 'test-webhook-secret'
PAYMENT_GATEWAY_SANDBOX = True

LOGGING["root"]["level"] = "CRITICAL"  # noqa: F405
LOGGING["loggers"] = {}  # noqa: F405
