"""Django settings for the event registration API.

Values come from the environment (or a .env file next to manage.py).
"""

from decimal import Decimal
from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env()
environ.Env.read_env(BASE_DIR / ".env")

DEBUG = env.bool("DEBUG", default=False)

if DEBUG:
    SECRET_KEY = env("SECRET_KEY", default="django-insecure-development-key")
else:
    SECRET_KEY = env("SECRET_KEY")

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "events",
    "registrations",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

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

DATABASES = {
    "default": env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}
DATABASES["default"]["ATOMIC_REQUESTS"] = False

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

CACHES = {
    "default": env.cache("CACHE_URL", default="locmemcache://"),
}

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.BasicAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "EXCEPTION_HANDLER": "registrations.handlers.errors.domain_exception_handler",
    "DEFAULT_THROTTLE_RATES": {
        "registrations": env("REGISTRATION_RATE_LIMIT", default="20/hour"),
        "promo_codes": env("PROMO_CODE_RATE_LIMIT", default="10/minute"),
    },
}

# Payment provider
PAYMENT_GATEWAY = {
    "BACKEND": env("PAYMENT_GATEWAY_BACKEND", default="monobank"),
    "API_URL": env("MONOBANK_API_URL", default="https://api.monobank.ua"),
    "API_KEY": env("MONOBANK_API_KEY", default=""),
    "WEBHOOK_URL": env(
        "PAYMENT_WEBHOOK_URL", default="http://localhost:8000/api/webhooks/payments"
    ),
    "WEBHOOK_SECRET": env("PAYMENT_WEBHOOK_SECRET", default=""),
    "PUBLIC_KEY": env("MONOBANK_PUBLIC_KEY", default=""),
    # "hmac-sha256" or "ecdsa-sha256"
    "SIGNATURE_ALGORITHM": env("PAYMENT_SIGNATURE_ALGORITHM", default="hmac-sha256"),
    "CURRENCY": "UAH",
    "CURRENCY_CODE": 980,
    "TIMEOUT": env.int("PAYMENT_GATEWAY_TIMEOUT", default=30),
}

# Only honoured when no webhook key is configured. Never enable in production.
ALLOW_UNSIGNED_WEBHOOKS = env.bool("ALLOW_UNSIGNED_WEBHOOKS", default=DEBUG)

PENDING_PAYMENT_TTL_MINUTES = env.int("PENDING_PAYMENT_TTL_MINUTES", default=15)

EVENT_BASE_PRICE = Decimal(env("EVENT_BASE_PRICE", default="1000"))

FRONTEND_SUCCESS_URL = env(
    "FRONTEND_SUCCESS_URL", default="http://localhost:3000/registration/success"
)
FRONTEND_FAILURE_URL = env(
    "FRONTEND_FAILURE_URL", default="http://localhost:3000/registration/failed"
)

EMAIL_BACKEND = env(
    "EMAIL_BACKEND", default="django.core.mail.backends.console.EmailBackend"
)
DEFAULT_FROM_EMAIL = env("DEFAULT_FROM_EMAIL", default="noreply@example.com")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
        },
        "registrations": {
            "handlers": ["console"],
            "level": env("LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
    },
}
