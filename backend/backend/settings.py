"""
Django settings for the GoodSale platform backend.

Values are read from the process environment; a ``.env`` file next to the
project is loaded first when present.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int_tuple(name: str, default: tuple) -> tuple:
    value = os.environ.get(name)
    if not value:
        return default
    return tuple(int(part) for part in value.split(",") if part.strip())


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-goodsale-development-key")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [host.strip() for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",") if host.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "django_filters",
    "accounts",
    "tenants",
    "billing",
    "audit",
    "notifications",
    "jobs",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"

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

ASGI_APPLICATION = "backend.asgi.application"

if os.environ.get("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["POSTGRES_DB"],
            "USER": os.environ.get("POSTGRES_USER", "postgres"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
            "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
            "ATOMIC_REQUESTS": False,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

AUTH_USER_MODEL = "accounts.User"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.BasicAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
        "rest_framework.filters.OrderingFilter",
    ],
}

# Email
EMAIL_BACKEND = os.environ.get("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend")
DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "GoodSale <no-reply@goodsale.app>")
SITE_NAME = os.environ.get("SITE_NAME", "GoodSale")
SITE_URL = os.environ.get("SITE_URL", "https://goodsale.app")

# Celery
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", False)

# Subscription lifecycle
CRON_SECRET = os.environ.get("CRON_SECRET", "")
TRIAL_PERIOD_DAYS = int(os.environ.get("TRIAL_PERIOD_DAYS", "14"))
TRIAL_NOTIFICATION_THRESHOLDS = _env_int_tuple("TRIAL_NOTIFICATION_THRESHOLDS", (7, 3, 1))
TRIAL_NOTIFICATION_CHANNEL = os.environ.get("TRIAL_NOTIFICATION_CHANNEL", "email")
RENEWAL_REMINDER_THRESHOLDS = _env_int_tuple("RENEWAL_REMINDER_THRESHOLDS", (30, 7, 1))
TRIAL_ARCHIVE_AFTER_DAYS = int(os.environ.get("TRIAL_ARCHIVE_AFTER_DAYS", "14"))
SUBSCRIPTION_REQUEST_AUTO_APPROVE_HOURS = int(os.environ.get("SUBSCRIPTION_REQUEST_AUTO_APPROVE_HOURS", "48"))
TENANT_NAME_CHANGE_AUTO_APPROVE_DAYS = int(os.environ.get("TENANT_NAME_CHANGE_AUTO_APPROVE_DAYS", "30"))
TENANT_NAME_CHANGE_COOLING_OFF_HOURS = int(os.environ.get("TENANT_NAME_CHANGE_COOLING_OFF_HOURS", "24"))
NOTIFICATION_TRANSPORT = os.environ.get(
    "NOTIFICATION_TRANSPORT", "notifications.transport.DjangoNotificationTransport"
)
TENANT_DATA_ARCHIVER = os.environ.get("TENANT_DATA_ARCHIVER", "tenants.archival.flag_tenant_data_archived")

PLAN_CONFIG = {
    "starter": {
        "name": "Starter",
        "price": "5000",
        "description": "Single shop, one register.",
        "features": ["pos", "inventory"],
    },
    "business": {
        "name": "Business",
        "price": "15000",
        "description": "Multiple registers, reports and team accounts.",
        "features": ["pos", "inventory", "reports", "team"],
    },
    "enterprise": {
        "name": "Enterprise",
        "price": "40000",
        "description": "Multi-location retail with purchase orders.",
        "features": ["pos", "inventory", "reports", "team", "purchase_orders"],
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "billing": {"level": "INFO", "propagate": True},
        "audit": {"level": "INFO", "propagate": True},
        "tenants": {"level": "INFO", "propagate": True},
    },
}
