"""
Test settings for the BOM governance service.
"""

from .base import *

DEBUG = False

ALLOWED_HOSTS = ['*']

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'bomgov-test-cache',
    }
}

REST_FRAMEWORK['DEFAULT_THROTTLE_CLASSES'] = []
REST_FRAMEWORK['DEFAULT_THROTTLE_RATES'] = {}

# Tasks run inline
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

BOM_GOVERNANCE = {
    'LOCATION_SEPARATOR': '/',
    'NON_PRODUCTION_STATES': ['DRAFT', 'PROTOTYPE', 'NRND', 'EOL', 'OBSOLETE'],
    'NEW_PART_STATUSES': ['NEW', 'ADDED'],
    'REQUIRE_LIFECYCLE_COLUMN': True,
}

# Let pytest's caplog see application records
for _name in ('domain', 'application', 'infrastructure', 'presentation'):
    LOGGING['loggers'][_name]['propagate'] = True
