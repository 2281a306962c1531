"""Django settings for the uptime-incidents project.

Values come from environment variables (optionally loaded from .env files,
see config/env.py). Defaults are suitable for local development and tests:
SQLite, an in-memory cache and an in-memory Celery broker.
"""

from __future__ import annotations

import os
from pathlib import Path

from celery.schedules import crontab

from config.env import env_bool, env_list, load_env

BASE_DIR = Path(__file__).resolve().parent.parent

load_env(BASE_DIR)

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-insecure-secret-key-change-me")
DEBUG = env_bool("DJANGO_DEBUG", default=False)
ALLOWED_HOSTS = env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1")

INSTALLED_APPS = [
    "config.apps.MonitoringAdminConfig",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_object_actions",
    "django_json_widget",
    "apps.accounts",
    "apps.monitoring",
    "apps.incidents",
    "apps.notify",
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

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "config" / "templates"],
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

# --- Database ---

DATABASE_ENGINE = os.environ.get("DATABASE_ENGINE", "sqlite")

if DATABASE_ENGINE == "postgresql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("DATABASE_NAME", "uptime_incidents"),
            "USER": os.environ.get("DATABASE_USER", ""),
            "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
            "HOST": os.environ.get("DATABASE_HOST", "localhost"),
            "PORT": os.environ.get("DATABASE_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
AUTH_USER_MODEL = "accounts.User"

# --- Cache (also backs the single-flight scheduling lock) ---

REDIS_URL = os.environ.get("REDIS_URL", "")

if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        }
    }

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# --- Celery ---

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", REDIS_URL or "memory://")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", REDIS_URL or "cache+memory://")
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", default=False)
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = "UTC"
CELERY_TASK_ACKS_LATE = True
CELERY_WORKER_PREFETCH_MULTIPLIER = 1

CELERY_BEAT_SCHEDULE = {
    "monitor-applications": {
        "task": "apps.monitoring.tasks.run_monitoring_pass",
        "schedule": 300.0,
    },
    "monitor-applications-daily-sweep": {
        "task": "apps.monitoring.tasks.run_monitoring_pass",
        "schedule": crontab(hour=8, minute=0),
        "kwargs": {"force": True},
    },
}

# --- Monitoring ---

MONITORING_REQUEST_TIMEOUT = float(os.environ.get("MONITORING_REQUEST_TIMEOUT", "15"))
MONITORING_DEFAULT_INTERVAL = int(os.environ.get("MONITORING_DEFAULT_INTERVAL", "5"))
MONITORING_LOCK_TIMEOUT = int(os.environ.get("MONITORING_LOCK_TIMEOUT", "300"))
MONITORING_USER_AGENT = os.environ.get("MONITORING_USER_AGENT", "UptimeIncidents/1.0")

# --- Notify ---

NOTIFY_WEBHOOK_TIMEOUT = float(os.environ.get("NOTIFY_WEBHOOK_TIMEOUT", "10"))
NOTIFY_SKIP_ALL = env_bool("NOTIFY_SKIP_ALL", default=False)
NOTIFY_SKIP = env_list("NOTIFY_SKIP")
NOTIFY_EMAIL = {
    "smtp_host": os.environ.get("NOTIFY_SMTP_HOST", "localhost"),
    "smtp_port": int(os.environ.get("NOTIFY_SMTP_PORT", "587")),
    "from_address": os.environ.get("NOTIFY_FROM_ADDRESS", "alerts@localhost"),
    "username": os.environ.get("NOTIFY_SMTP_USERNAME", ""),
    "password": os.environ.get("NOTIFY_SMTP_PASSWORD", ""),
    "use_tls": env_bool("NOTIFY_SMTP_USE_TLS", default=True),
    "use_ssl": env_bool("NOTIFY_SMTP_USE_SSL", default=False),
}

# --- Logging ---

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

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
        "level": "WARNING",
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "celery": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
