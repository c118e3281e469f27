import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

# Load a local .env when present (useful outside Docker)
load_dotenv(BASE_DIR / ".env")

DEFAULT_SECRET_KEY = "change-me"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value: str) -> timedelta:
    """Parse token lifetimes such as "1d", "12h", "30m" or "3600"."""
    match = _DURATION_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./lexilearn.db"
    secret_key: str = DEFAULT_SECRET_KEY
    algorithm: str = "HS256"
    token_lifetime: timedelta = timedelta(days=1)
    verification_code_ttl: timedelta = timedelta(minutes=10)
    mail_server: str = "smtp.gmail.com"
    mail_port: int = 465
    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = ""
    mail_timeout: float = 60.0
    static_dir: Path = BASE_DIR / "public"
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = field(default=("*",))
    public_prefixes: tuple[str, ...] = field(default=("/user", "/vocab"))


def _clean_password(raw: str | None, server: str) -> str:
    if raw is None:
        return ""
    cleaned = raw.strip().strip('"').strip()
    # Gmail app passwords are shown with spaces but sent without them
    return cleaned.replace(" ", "") if "gmail" in server.lower() else cleaned


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    mail_server = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    mail_username = os.getenv("MAIL_USERNAME", "")
    static_dir = Path(os.getenv("STATIC_DIR", "public"))
    if not static_dir.is_absolute():
        static_dir = BASE_DIR / static_dir
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./lexilearn.db"),
        secret_key=os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY),
        algorithm=os.getenv("ALGORITHM", "HS256"),
        token_lifetime=parse_duration(os.getenv("JWT_EXPIRES", "1d")),
        verification_code_ttl=timedelta(minutes=int(os.getenv("VERIFICATION_CODE_TTL_MINUTES", "10"))),
        mail_server=mail_server,
        mail_port=int(os.getenv("MAIL_PORT", "465")),
        mail_username=mail_username,
        mail_password=_clean_password(os.getenv("MAIL_PASSWORD"), mail_server),
        mail_from=os.getenv("MAIL_FROM", mail_username),
        mail_timeout=float(os.getenv("MAIL_TIMEOUT", "60")),
        static_dir=static_dir,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )
