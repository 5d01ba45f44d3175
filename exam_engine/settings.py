from pathlib import Path
from datetime import timedelta
from dotenv import load_dotenv
import os

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("SECRET_KEY") or "dev-only-secret-key-change-me-before-deploying-anywhere"

DEBUG = env_bool("DEBUG")

ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")


CORS_ALLOW_ALL_ORIGINS = True

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")



# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',
    'rest_framework',
    'drf_spectacular',
    'exam_core',
]

AUTH_USER_MODEL = 'exam_core.Account'



REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES':[
        'exam_core.authenticator.SessionTokenAuthentication',
    ],
    'DEFAULT_THROTTLE_CLASSES':[
        'rest_framework.throttling.ScopedRateThrottle',
    ],

    'DEFAULT_THROTTLE_RATES':{
        'auth_register': os.getenv("THROTTLE_AUTH_REGISTER", '20/hour'),
        'auth_login': os.getenv("THROTTLE_AUTH_LOGIN", '30/hour'),
        'auth_verify': os.getenv("THROTTLE_AUTH_VERIFY", '10/hour'),
        'exam_submit': os.getenv("THROTTLE_EXAM_SUBMIT", '3/minute'),
    },

    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'EXCEPTION_HANDLER': 'exam_core.utils.exception_handler.exception_handler',
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}



# Session tokens. One lifetime for every code path that issues an access token.
SESSION_TOKEN_LIFETIME = timedelta(hours=int(os.getenv("SESSION_TOKEN_LIFETIME_HOURS", "168")))
REFRESH_TOKEN_LIFETIME = timedelta(days=int(os.getenv("REFRESH_TOKEN_LIFETIME_DAYS", "30")))

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': SESSION_TOKEN_LIFETIME,
    'REFRESH_TOKEN_LIFETIME': REFRESH_TOKEN_LIFETIME,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': os.getenv("JWT_SECRET") or SECRET_KEY,
    'AUTH_HEADER_TYPES': ('Bearer',),
    'USER_ID_FIELD': 'id',
    'USER_ID_CLAIM': 'user_id',
    'UPDATE_LAST_LOGIN': False,
}

# Account lockout
ACCOUNT_LOCKOUT_THRESHOLD = int(os.getenv("ACCOUNT_LOCKOUT_THRESHOLD", "5"))
ACCOUNT_LOCKOUT_DURATION = timedelta(hours=int(os.getenv("ACCOUNT_LOCKOUT_HOURS", "2")))

EMAIL_VERIFICATION_HOURS = int(os.getenv("EMAIL_VERIFICATION_HOURS", "48"))

# Google OAuth
GOOGLE_OAUTH = {
    "CLIENT_ID": os.getenv("GOOGLE_CLIENT_ID", ""),
    "CLIENT_SECRET": os.getenv("GOOGLE_CLIENT_SECRET", ""),
    "REDIRECT_URI": os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:8000/api/auth/google/callback/"),
    "TIMEOUT": int(os.getenv("GOOGLE_OAUTH_TIMEOUT", "10")),
}



SPECTACULAR_SETTINGS = {
    "TITLE": "Online Examination Platform API",
    "VERSION": "1.0.0",
    "DESCRIPTION": """
### Overview
REST API behind the online examination platform. Students take timed exams,
Teachers author exams and questions, Admins manage accounts.

---

### Authentication & Authorization
This API uses **Bearer Token Authentication** with signed, time-limited session tokens.

**Header format:**
`Authorization: Bearer <your_access_token>`

#### Notes
- Requests without a valid token receive `401` with a code such as
  `TOKEN_EXPIRED`, `INVALID_TOKEN`, `TOKEN_BLACKLISTED` or `ROLE_CHANGED`
- Five consecutive failed logins lock an account for two hours (`423 ACCOUNT_LOCKED`)
- Teachers can only modify their own exams and questions; Admins can modify any
- Exams cannot be modified once their start time has passed (`EXAM_ALREADY_STARTED`)
- Students can only take exams that are active, open now, allow Students and
  have attempts left

---

### Error format
Every error response has the shape `{"code": "...", "message": "..."}` plus
contextual fields (for example `lock_until`, `start_time`, `required_roles`).
Validation errors add an `errors` object keyed by field.

---

### Student Exam Flow

```mermaid
Flow:

1. UI lists open exams (ENDPOINT: GET /api/exams/)
2. Student opens an exam (ENDPOINT: GET /api/exams/{exam_id}/)
3. Student starts an attempt (ENDPOINT: POST /api/exams/{exam_id}/start/)
4. Student submits answers; the server scores them immediately (ENDPOINT: POST /api/exams/{exam_id}/submit/)
5. Student reviews results (ENDPOINT: GET /api/results/)
```
""",
}



MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'exam_engine.urls'

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

WSGI_APPLICATION = 'exam_engine.wsgi.application'


# Database

DATABASES = {
    'default': {
        'ENGINE': os.getenv("DB_ENGINE", 'django.db.backends.sqlite3'),
        'NAME': os.getenv("DB_NAME") or BASE_DIR / 'db.sqlite3',
        'USER': os.getenv("DB_USER", ""),
        'PASSWORD': os.getenv("DB_PASSWORD", ""),
        'HOST': os.getenv("DB_HOST", ""),
        'PORT': os.getenv("DB_PORT", ""),
    }
}


# Shared key-value store with TTL. Backs the logout blacklist and throttling;
# point it at a shared backend (e.g. Redis) when running more than one process.

CACHES = {
    'default': {
        'BACKEND': os.getenv("CACHE_BACKEND", 'django.core.cache.backends.locmem.LocMemCache'),
        'LOCATION': os.getenv("CACHE_LOCATION", 'exam-platform'),
    }
}


# Password validation

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Logging

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'exam_core': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}


# Internationalization
LANGUAGE_CODE = 'en'

TIME_ZONE = os.getenv("TIME_ZONE", 'UTC')

USE_I18N = True
USE_TZ = True


# Static files (CSS, JavaScript, Images)
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')
STATIC_URL = 'static/'



DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
