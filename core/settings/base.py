"""
Shared Django settings for the adforge backend.

Environment specific modules (local, dev, staging, prod, test) import
everything from here and override databases, caches, Redis and logging.
"""

from datetime import timedelta
from pathlib import Path

from decouple import config

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = config("SECRET_KEY", default="insecure-change-me")
DEBUG = config("DEBUG", cast=bool, default=False)
ALLOWED_HOSTS = []

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third party
    "corsheaders",
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "channels",
    "strawberry_django",
    # Local
    "apps.credits",
    "apps.generation",
    "apps.campaigns",
    "apps.creatives",
    "apps.realtime",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "apps.authentication.middleware.GraphQLJWTMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "core.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

ASGI_APPLICATION = "core.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# DRF
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 50,
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=config("JWT_ACCESS_MINUTES", cast=int, default=60)),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=config("JWT_REFRESH_DAYS", cast=int, default=7)),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "AdForge Backend API",
    "DESCRIPTION": "Credit-gated content generation and campaign publishing",
    "VERSION": "1.0.0",
}

# Channels (in-process by default, Redis in deployed environments)
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    },
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Celery
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = "UTC"
PERIODIC_TASKS_ENABLED = config("PERIODIC_TASKS_ENABLED", cast=bool, default=True)

# Remote calls
RETRY_MAX_ATTEMPTS = config("RETRY_MAX_ATTEMPTS", cast=int, default=3)
RETRY_BASE_DELAY = config("RETRY_BASE_DELAY", cast=float, default=1.0)
REMOTE_REQUEST_TIMEOUT = config("REMOTE_REQUEST_TIMEOUT", cast=int, default=30)

FACEBOOK_GRAPH_API_URL = config("FACEBOOK_GRAPH_API_URL", default="https://graph.facebook.com/v18.0")

GENERATION_PROVIDER_URL = config("GENERATION_PROVIDER_URL", default="http://localhost:8080/v1/generate")
GENERATION_PROVIDER_API_KEY = config("GENERATION_PROVIDER_API_KEY", default="")
GENERATION_CREDIT_COST = config("GENERATION_CREDIT_COST", cast=int, default=1)

# Credits
CREDIT_RESERVATION_TTL = config("CREDIT_RESERVATION_TTL", cast=int, default=900)

# Campaign publishing
CAMPAIGN_STATUS_CACHE_TIMEOUT = config("CAMPAIGN_STATUS_CACHE_TIMEOUT", cast=int, default=3600)
CAMPAIGN_PUBLISH_LOCK_TIMEOUT = config("CAMPAIGN_PUBLISH_LOCK_TIMEOUT", cast=int, default=600)

# Asset migration
GS_BUCKET_NAME = config("GS_BUCKET_NAME", default="adforge-assets")
ASSET_MIGRATION_BATCH_SIZE = config("ASSET_MIGRATION_BATCH_SIZE", cast=int, default=10)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "apps": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "core": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "tasks": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}
