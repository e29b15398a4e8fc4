"""
Django settings for the school ID card service.
"""

from pathlib import Path

from decouple import config

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config("DJANGO_SECRET_KEY", default="change-me")
DEBUG = config("DJANGO_DEBUG", cast=bool, default=False)
FRONTEND_BASE_URL = config("FRONTEND_BASE_URL", default="http://localhost:3000")


def split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


ALLOWED_HOSTS = split_csv(config("DJANGO_ALLOWED_HOSTS", default="localhost,127.0.0.1,[::1]"))
if DEBUG and config("DJANGO_ALLOW_ALL_HOSTS_IN_DEBUG", cast=bool, default=True):
    # In local development, allow LAN/mobile access even when host IP changes.
    ALLOWED_HOSTS = ["*"]

SECURE_CONTENT_TYPE_NOSNIFF = config(
    "DJANGO_SECURE_CONTENT_TYPE_NOSNIFF",
    cast=bool,
    default=True,
)
X_FRAME_OPTIONS = config("DJANGO_X_FRAME_OPTIONS", default="DENY")


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework.authtoken",
    "drf_spectacular",
    "accounts",
    "schools",
    "students",
    "idcards",
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
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"

DB_ENGINE = config("DJANGO_DB_ENGINE", default="django.db.backends.sqlite3")
if DB_ENGINE == "django.db.backends.postgresql":
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": config("POSTGRES_DB", default="school_idcards"),
            "USER": config("POSTGRES_USER", default="idcards_user"),
            "PASSWORD": config("POSTGRES_PASSWORD", default="idcards_password"),
            "HOST": config("POSTGRES_HOST", default="db"),
            "PORT": config("POSTGRES_PORT", default=5432, cast=int),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": config("SQLITE_PATH", default=str(BASE_DIR / "db.sqlite3")),
        }
    }


AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en"
TIME_ZONE = config("DJANGO_TIME_ZONE", default="UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = config("MEDIA_URL", default="/media/")
MEDIA_ROOT = Path(config("MEDIA_ROOT", default=str(BASE_DIR / "media")))
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "accounts.User"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.TokenAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "School ID Card API",
    "DESCRIPTION": "Template resolution and print sheet generation for student ID cards",
    "VERSION": "0.1.0",
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": config("DJANGO_LOG_LEVEL", default="WARNING"),
    },
    "loggers": {
        "idcards": {
            "handlers": ["console"],
            "level": config("IDCARD_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
    },
}

# ID card print geometry. Sizes are millimetres, densities are dots per inch.
# The default sheet is A3 landscape, which holds four 92 mm units per row.
IDCARD_PREVIEW_DPI = config("IDCARD_PREVIEW_DPI", cast=int, default=96)
IDCARD_PRINT_DPI = config("IDCARD_PRINT_DPI", cast=int, default=150)
IDCARD_SHEET_WIDTH_MM = config("IDCARD_SHEET_WIDTH_MM", cast=float, default=420.0)
IDCARD_SHEET_HEIGHT_MM = config("IDCARD_SHEET_HEIGHT_MM", cast=float, default=297.0)
IDCARD_SHEET_MARGIN_MM = config("IDCARD_SHEET_MARGIN_MM", cast=float, default=10.0)
IDCARD_SHEET_COLUMNS = config("IDCARD_SHEET_COLUMNS", cast=int, default=4)
IDCARD_ROW_GAP_MM = config("IDCARD_ROW_GAP_MM", cast=float, default=25.0)
IDCARD_COLUMN_GAP_MM = config("IDCARD_COLUMN_GAP_MM", cast=float, default=8.0)
IDCARD_MARK_SIZE_MM = config("IDCARD_MARK_SIZE_MM", cast=float, default=15.0)
IDCARD_MARK_STROKE_MM = config("IDCARD_MARK_STROKE_MM", cast=float, default=0.3)
IDCARD_MARK_OPACITY = config("IDCARD_MARK_OPACITY", cast=float, default=0.1)
IDCARD_BUILTIN_FONTS = split_csv(
    config("IDCARD_BUILTIN_FONTS", default="Outfit,Inter,Poppins,Roboto,Geist")
)
IDCARD_GOOGLE_FONTS_URL = config(
    "IDCARD_GOOGLE_FONTS_URL",
    default="https://fonts.googleapis.com/css2",
)
