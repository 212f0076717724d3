"""
Django settings for the Syndicate project.
Persistent-state backend for gangs, territories, wars and missions.
"""

from pathlib import Path
import os
import dj_database_url
from celery.schedules import crontab
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Build paths inside the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Security settings
SECRET_KEY = os.environ.get('SECRET_KEY', 'syndicate-dev-key-change-in-production')
DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'
ALLOWED_HOSTS = [
    h.strip() for h in os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()
] + ['testserver']  # For Django testing

# Application definition
INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'corsheaders',
    'gangs',  # Gang, territory, war and mission state
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'syndicate.urls'

TEMPLATES = []

WSGI_APPLICATION = 'syndicate.wsgi.application'

# Database
if 'DATABASE_URL' in os.environ and os.environ.get('DATABASE_URL'):
    DATABASES = {
        'default': dj_database_url.parse(
            os.environ.get('DATABASE_URL'),
            conn_max_age=600,
            conn_health_checks=True,
        )
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# CORS: the browser client talks to the JSON API
CORS_ALLOWED_ORIGINS = [
    o.strip() for o in os.environ.get('CORS_ALLOWED_ORIGINS', 'http://localhost:3000').split(',') if o.strip()
]
CORS_ALLOW_CREDENTIALS = True

# Credentialed cross-origin writes also need to pass the CSRF origin check
CSRF_TRUSTED_ORIGINS = [
    o.strip() for o in os.environ.get(
        'CSRF_TRUSTED_ORIGINS', ','.join(CORS_ALLOWED_ORIGINS)
    ).split(',') if o.strip()
]

CSRF_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_HTTPONLY = False
SESSION_COOKIE_SECURE = not DEBUG

# Celery configuration
CELERY_BROKER_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    'complete-due-missions': {
        'task': 'gangs.tasks.complete_due_missions',
        'schedule': crontab(minute='*/1'),
    },
    'accrue-territory-income': {
        'task': 'gangs.tasks.accrue_territory_income',
        'schedule': crontab(minute=0),
    },
}

# Logging configuration
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        'gangs': {
            'handlers': ['console'],
            'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}

# Game-specific settings
GANG_SETTINGS = {
    # Economy
    'FOUNDING_FEE': int(os.environ.get('FOUNDING_FEE', '10000')),  # Non-refundable cost of founding a gang
    'STARTING_CASH': int(os.environ.get('STARTING_CASH', '1000')),  # Cash of a freshly created wallet

    # Gang identity rules
    'GANG_NAME_MIN_LENGTH': int(os.environ.get('GANG_NAME_MIN_LENGTH', '3')),
    'GANG_NAME_MAX_LENGTH': int(os.environ.get('GANG_NAME_MAX_LENGTH', '50')),
    'GANG_TAG_MIN_LENGTH': int(os.environ.get('GANG_TAG_MIN_LENGTH', '2')),
    'GANG_TAG_MAX_LENGTH': int(os.environ.get('GANG_TAG_MAX_LENGTH', '5')),

    # Progression
    'GANG_EXPERIENCE_PER_LEVEL': int(os.environ.get('GANG_EXPERIENCE_PER_LEVEL', '1000')),

    # Territory control
    'TERRITORY_ATTACK_COOLDOWN_HOURS': int(os.environ.get('TERRITORY_ATTACK_COOLDOWN_HOURS', '24')),

    # Storage contention handling
    'TX_RETRY_ATTEMPTS': int(os.environ.get('TX_RETRY_ATTEMPTS', '3')),
    'TX_RETRY_BACKOFF_MS': int(os.environ.get('TX_RETRY_BACKOFF_MS', '50')),
}
