"""
Django settings for Carshop — a car and accessory storefront.
"""

import os
from pathlib import Path

import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get(
    'DJANGO_SECRET_KEY',
    'django-insecure-change-me-in-production'
)

DEBUG = os.environ.get('DJANGO_DEBUG', 'False').lower() in ('true', '1', 'yes')

ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

CSRF_TRUSTED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get('CSRF_TRUSTED_ORIGINS', '').split(',')
    if origin.strip()
]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Carshop apps
    'products',
    'tracking',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.locale.LocaleMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

# Debug toolbar is only wired in for local development.
if DEBUG:
    INSTALLED_APPS.insert(0, 'debug_toolbar')
    MIDDLEWARE.insert(0, 'debug_toolbar.middleware.DebugToolbarMiddleware')

INTERNAL_IPS = ['127.0.0.1']  # Required for django-debug-toolbar to work

ROOT_URLCONF = 'carshop.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
                'products.context_processors.shop_navigation',
            ],
        },
    },
]

WSGI_APPLICATION = 'carshop.wsgi.application'

# Database — DATABASE_URL wins; falls back to SQLite locally
DATABASES = {
    'default': dj_database_url.config(
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en'
LANGUAGES = [
    ('en', 'English'),
]
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STATICFILES_DIRS = [BASE_DIR / 'static']
STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGIN_URL = '/admin/login/'

# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------
# Only small, rarely changing lookups are cached (category subtrees).
# Listing and search pages are never cached: every render records
# impressions. Set CACHE_BACKEND / CACHE_LOCATION to use Redis in production.
CACHES = {
    'default': {
        'BACKEND': os.environ.get(
            'CACHE_BACKEND',
            'django.core.cache.backends.locmem.LocMemCache',
        ),
        'LOCATION': os.environ.get('CACHE_LOCATION', 'carshop'),
    }
}

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
SHOP_LOG_LEVEL = os.environ.get('SHOP_LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '%(levelname)s %(name)s: %(message)s'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'loggers': {
        'products': {
            'handlers': ['console'],
            'level': SHOP_LOG_LEVEL,
            'propagate': False,
        },
        'tracking': {
            'handlers': ['console'],
            'level': SHOP_LOG_LEVEL,
            'propagate': False,
        },
        'django.db.backends': {
            'handlers': ['console'],
            # Change to DEBUG when actively investigating query counts.
            'level': 'WARNING',
            'propagate': False,
        },
    },
}

# ---------------------------------------------------------------------------
# Shop
# ---------------------------------------------------------------------------
# Index tenants: each names a backend class and its options. The storefront
# reads products through the tenant selected by SHOP_CURRENT_TENANT.
SHOP_INDEX_TENANTS = {
    'default': {
        'BACKEND': 'products.index.database.DatabaseBackend',
    },
    'elasticsearch': {
        'BACKEND': 'products.index.elasticsearch.ElasticsearchBackend',
        'URL': os.environ.get('ELASTICSEARCH_URL', 'http://localhost:9200'),
        'INDEX': os.environ.get('ELASTICSEARCH_INDEX', 'carshop_products'),
        'TIMEOUT': int(os.environ.get('ELASTICSEARCH_TIMEOUT', '10')),
    },
}
SHOP_CURRENT_TENANT = os.environ.get('SHOP_INDEX_TENANT', 'default')

# Name of the FilterDefinition used when neither the request nor the
# category supplies one. Loaded once, on first use.
SHOP_FALLBACK_FILTER_DEFINITION = os.environ.get('SHOP_FALLBACK_FILTER_DEFINITION', '')

SHOP_TRACKERS = [
    'tracking.trackers.DatabaseTracker',
    'tracking.trackers.LoggingTracker',
]

SHOP_PAGE_RANGE = 5
SHOP_AUTOCOMPLETE_LIMIT = 10
