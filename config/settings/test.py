"""
Settings for the test suite
"""
from decimal import Decimal

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    'DEFAULT_THROTTLE_CLASSES': [],
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

DELIVERY_CHARGES = {
    'local': Decimal('0'),
    'national': Decimal('100'),
}
VERIFY_CLIENT_PRICES = False

ORDER_EXPORT = {
    'BACKEND': 'apps.orders.export.NullExportSink',
    'OPTIONS': {},
}
EXPORT_TIMEZONE = 'Asia/Dhaka'
ORDER_EXPORT_ASYNC = False

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {'class': 'logging.StreamHandler'},
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
}
