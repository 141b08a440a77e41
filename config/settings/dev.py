"""Development settings for the trek booking project.

Extends the base settings with development specific configuration: debug
mode, console email backend, human readable logs and an emulated payment
gateway. Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Use console email backend during development
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

# No real charges during development unless explicitly switched off
PAYMENT_GATEWAY_SANDBOX = os.environ.get('PAYMENT_GATEWAY_SANDBOX', 'true').lower() == 'true'

LOGGING["handlers"]["console"]["formatter"] = "console"  # noqa: F405
