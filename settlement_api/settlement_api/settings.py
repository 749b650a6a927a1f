"""
Django settings for the settlement_api project.

Everything deployment specific is read from the environment (or a .env file
next to manage.py) with django-environ. See .env.example.
"""
import os
from datetime import timedelta
from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ['localhost', '127.0.0.1']),
    PAYMENT_GATEWAY=(str, 'mock'),
    MERCADOPAGO_ACCESS_TOKEN=(str, ''),
    MERCADOPAGO_API_URL=(str, 'https://api.mercadopago.com'),
    MERCADOPAGO_WEBHOOK_SECRET=(str, ''),
    MERCADOPAGO_NOTIFICATION_URL=(str, ''),
    GATEWAY_TIMEOUT_SECONDS=(int, 30),
    GATEWAY_MAX_RETRIES=(int, 3),
    MOCK_GATEWAY_SETTLE_SECONDS=(int, 30),
    PAYMENT_WINDOW_MINUTES=(int, 30),
    PAYMENT_POLL_INTERVAL_SECONDS=(int, 15),
    SETTLEMENT_CONFLICT_RETRIES=(int, 3),
    CELERY_BROKER_URL=(str, 'redis://localhost:6379/0'),
    LOG_LEVEL=(str, 'INFO'),
)
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))

SECRET_KEY = env('SECRET_KEY', default='django-insecure-change-me')
DEBUG = env('DEBUG')
ALLOWED_HOSTS = env('ALLOWED_HOSTS')


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',
    'rest_framework_simplejwt',
    'django_filters',
    'drf_yasg',
    'auditlog',

    'accounts',
    'trades',
    'escrow',
    'payments',
    'reputation',
    'settlement',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'auditlog.middleware.AuditlogMiddleware',
    'settlement_api.middleware.SettlementAuditMiddleware',
]

ROOT_URLCONF = 'settlement_api.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'settlement_api.wsgi.application'


DATABASES = {
    'default': env.db('DATABASE_URL', default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_USER_MODEL = 'accounts.Trader'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_FILTER_BACKENDS': (
        'django_filters.rest_framework.DjangoFilterBackend',
    ),
    'EXCEPTION_HANDLER': 'settlement.api.settlement_exception_handler',
    'DEFAULT_THROTTLE_RATES': {
        'login': '10/min',
    },
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=30),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'AUTH_HEADER_TYPES': ('Bearer',),
}

SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Bearer': {'type': 'apiKey', 'name': 'Authorization', 'in': 'header'},
    },
}


# Payment gateway
PAYMENT_GATEWAY = env('PAYMENT_GATEWAY')
MERCADOPAGO_ACCESS_TOKEN = env('MERCADOPAGO_ACCESS_TOKEN')
MERCADOPAGO_API_URL = env('MERCADOPAGO_API_URL')
MERCADOPAGO_WEBHOOK_SECRET = env('MERCADOPAGO_WEBHOOK_SECRET')
MERCADOPAGO_NOTIFICATION_URL = env('MERCADOPAGO_NOTIFICATION_URL')
GATEWAY_TIMEOUT_SECONDS = env('GATEWAY_TIMEOUT_SECONDS')
GATEWAY_MAX_RETRIES = env('GATEWAY_MAX_RETRIES')
MOCK_GATEWAY_SETTLE_SECONDS = env('MOCK_GATEWAY_SETTLE_SECONDS')

# Settlement
PAYMENT_WINDOW_MINUTES = env('PAYMENT_WINDOW_MINUTES')
PAYMENT_POLL_INTERVAL_SECONDS = env('PAYMENT_POLL_INTERVAL_SECONDS')
SETTLEMENT_CONFLICT_RETRIES = env('SETTLEMENT_CONFLICT_RETRIES')


# Celery
CELERY_BROKER_URL = env('CELERY_BROKER_URL')
CELERY_RESULT_BACKEND = env('CELERY_RESULT_BACKEND', default=None)
CELERY_TASK_ALWAYS_EAGER = env.bool('CELERY_TASK_ALWAYS_EAGER', default=False)
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    'poll-open-payments': {
        'task': 'payments.tasks.poll_open_payments',
        'schedule': PAYMENT_POLL_INTERVAL_SECONDS,
    },
    'expire-unpaid-trades': {
        'task': 'payments.tasks.expire_unpaid_trades',
        'schedule': 60.0,
    },
}


LOG_LEVEL = env('LOG_LEVEL')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {name} {message}',
            'style': '{',
        },
        'audit': {
            'format': '{asctime} AUDIT {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'audit_console': {
            'class': 'logging.StreamHandler',
            'formatter': 'audit',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'audit': {
            'handlers': ['audit_console'],
            'level': 'INFO',
            'propagate': False,
        },
        'settlement': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'escrow': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'payments': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'reputation': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'trades': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
    },
}
