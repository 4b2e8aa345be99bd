# jobtrack/core/config.py
"""
Process-wide settings, read once from the environment.

Outside prod a local ``.env`` file is loaded first (python-dotenv); in prod the
service environment is the only source and missing secrets fail at import.
"""
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

TRUTHY = frozenset({"1", "true", "yes", "on"})

DEV_CORS_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in TRUTHY


def parse_csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def merge_unique(items: list[str]) -> list[str]:
    # dict keeps first-seen order
    return list(dict.fromkeys(items))


def _str(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _bool(name: str, default: bool = False) -> bool:
    return str_to_bool(os.getenv(name), default=default)


def _url(name: str, dev_default: str, *, prod: bool) -> str:
    return _str(name, "" if prod else dev_default).rstrip("/")


class Settings:
    def __init__(self) -> None:
        self.ENV = _str("ENV", "dev").lower()  # dev | test | prod
        if not self.is_prod:
            load_dotenv()

        self._load_database()
        self._load_http()
        self._load_auth()
        self._load_email()

        self._validate_prod()

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    # ----------------------------
    # Sections
    # ----------------------------
    def _load_database(self) -> None:
        # A full DATABASE_URL (sqlite for local runs and tests) beats the parts.
        self.DATABASE_URL = _str("DATABASE_URL")
        self.DB_HOST = _str("DB_HOST")
        self.DB_PORT = _str("DB_PORT", "5432")
        self.DB_NAME = _str("DB_NAME")
        self.DB_APP_USER = _str("DB_APP_USER")
        self.DB_APP_PASSWORD = os.getenv("DB_APP_PASSWORD", "")
        self.DB_MIGRATOR_USER = _str("DB_MIGRATOR_USER")
        self.DB_MIGRATOR_PASSWORD = os.getenv("DB_MIGRATOR_PASSWORD", "")
        self.DB_SSLMODE = _str("DB_SSLMODE", "require").lower()

    def _load_http(self) -> None:
        configured = parse_csv(os.getenv("CORS_ORIGINS"))
        extra = [] if self.is_prod else list(DEV_CORS_ORIGINS)
        self.CORS_ORIGINS = merge_unique(configured + extra)

        self.FRONTEND_BASE_URL = _url("FRONTEND_BASE_URL", "http://localhost:5173", prod=self.is_prod)

    def _load_auth(self) -> None:
        self.JWT_SECRET = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM = _str("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = _int("ACCESS_TOKEN_EXPIRE_MINUTES", 15)

        # Session cookie backed by a "session" ledger token.
        self.SESSION_TOKEN_EXPIRE_HOURS = _int("SESSION_TOKEN_EXPIRE_HOURS", 24)
        self.SESSION_COOKIE_NAME = _str("SESSION_COOKIE_NAME", "session_token")
        self.SESSION_COOKIE_SAMESITE = _str("SESSION_COOKIE_SAMESITE", "lax")
        self.SESSION_COOKIE_PATH = _str("SESSION_COOKIE_PATH", "/auth")

        self.TOKEN_BYTES = _int("TOKEN_BYTES", 32)
        self.EMAIL_VERIFY_TOKEN_EXPIRE_HOURS = _int("EMAIL_VERIFY_TOKEN_EXPIRE_HOURS", 24)
        self.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES = _int("PASSWORD_RESET_TOKEN_EXPIRE_MINUTES", 10)

        # 0 disables lockout; a lockout of 0 minutes lasts until the password is reset.
        self.LOGIN_MAX_FAILED_ATTEMPTS = _int("LOGIN_MAX_FAILED_ATTEMPTS", 5)
        self.LOGIN_LOCKOUT_MINUTES = _int("LOGIN_LOCKOUT_MINUTES", 15)
        self.PASSWORD_MIN_LENGTH = _int("PASSWORD_MIN_LENGTH", 8)

    def _load_email(self) -> None:
        self.EMAIL_ENABLED = _bool("EMAIL_ENABLED")
        self.EMAIL_PROVIDER = _str("EMAIL_PROVIDER", "resend").lower()
        self.FROM_EMAIL = _str("FROM_EMAIL")
        self.RESEND_API_KEY = _str("RESEND_API_KEY")

        self.SMTP_HOST = _str("SMTP_HOST")
        self.SMTP_PORT = _int("SMTP_PORT", 587)
        self.SMTP_USERNAME = _str("SMTP_USERNAME")
        self.SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
        self.SMTP_USE_TLS = _bool("SMTP_USE_TLS", default=True)
        self.SMTP_USE_SSL = _bool("SMTP_USE_SSL")

    # ----------------------------
    # Prod guard rails
    # ----------------------------
    def _validate_prod(self) -> None:
        if not self.is_prod:
            return

        required = {
            "JWT_SECRET": self.JWT_SECRET,
            "FRONTEND_BASE_URL": self.FRONTEND_BASE_URL,
            "CORS_ORIGINS": self.CORS_ORIGINS,
        }
        if not self.DATABASE_URL:
            required.update(
                DB_HOST=self.DB_HOST,
                DB_NAME=self.DB_NAME,
                DB_APP_USER=self.DB_APP_USER,
                DB_APP_PASSWORD=self.DB_APP_PASSWORD,
            )
            if self.DB_SSLMODE != "require":
                raise RuntimeError("DB_SSLMODE must be 'require' in prod")

        if any(host in origin for origin in self.CORS_ORIGINS for host in ("localhost", "127.0.0.1")):
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")
        if self.FRONTEND_BASE_URL and not self.FRONTEND_BASE_URL.startswith("https://"):
            raise RuntimeError("FRONTEND_BASE_URL should be https://... in prod")

        missing = [name for name, value in required.items() if not value]
        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    # ----------------------------
    # Database URLs
    # ----------------------------
    def _postgres_url(self, user: str, password: str) -> str:
        return (
            f"postgresql+psycopg2://{user}:{quote_plus(password)}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSLMODE}"
        )

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or self._postgres_url(self.DB_APP_USER, self.DB_APP_PASSWORD)

    @property
    def migrations_database_url(self) -> str:
        return self.DATABASE_URL or self._postgres_url(self.DB_MIGRATOR_USER, self.DB_MIGRATOR_PASSWORD)


settings = Settings()


def require_jwt_secret() -> None:
    if not (settings.JWT_SECRET or "").strip():
        raise RuntimeError("JWT_SECRET must be set")
