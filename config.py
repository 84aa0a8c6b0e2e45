"""Application settings — read once from the environment, passed explicitly.

Nothing below the app factory or CLI entry point reads ``os.environ``; the
gateway, the orchestrator and the insight service all receive a ``Settings``
instance.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from errors import ConfigError

DEFAULT_MODELS = [
    'gemini-2.5-flash',
    'gemini-2.5-pro',
    'gemini-2.0-flash',
    'gemini-2.0-flash-lite',
]

# Free job boards the prompt asks the model to draw listings from
DEFAULT_PLATFORMS = [
    'Unstop.com',
    'Naukri.com',
    'LinkedIn Jobs',
    'Freshersworld.com',
    'Internshala.com',
    'Indeed India',
    'AngelList',
    'RemoteOK',
]


def _split_list(raw: str) -> list:
    return [item.strip() for item in raw.split(',') if item.strip()]


def _database_url(raw: str, base_dir: str) -> str:
    if raw:
        # Railway / Heroku Postgres URLs start with postgres:// but SQLAlchemy needs postgresql://
        if raw.startswith('postgres://'):
            raw = raw.replace('postgres://', 'postgresql://', 1)
        return raw
    return f"sqlite:///{os.path.join(base_dir, 'career.db')}"


@dataclass
class Settings:
    gemini_api_key: str = ''
    gemini_base_url: str = 'https://generativelanguage.googleapis.com/v1beta/openai/'
    models: list = field(default_factory=lambda: list(DEFAULT_MODELS))
    llm_timeout: float = 120.0
    llm_temperature: float = 0.4
    llm_max_tokens: int = 8000
    rate_limit_backoff: float = 2.0
    generation_max_attempts: int = 3
    database_url: str = 'sqlite://'
    admin_token: str = 'change-me-in-production'
    secret_key: str = ''
    platforms: list = field(default_factory=lambda: list(DEFAULT_PLATFORMS))

    def validate(self) -> 'Settings':
        """Raise ConfigError if the settings cannot drive a refresh."""
        if not self.gemini_api_key:
            raise ConfigError('No LLM backend configured — set GEMINI_API_KEY')
        if not self.models:
            raise ConfigError('GEMINI_MODELS must name at least one model')
        if self.generation_max_attempts < 1:
            raise ConfigError('GENERATION_MAX_ATTEMPTS must be at least 1')
        if self.rate_limit_backoff < 0:
            raise ConfigError('RATE_LIMIT_BACKOFF cannot be negative')
        return self


def load_settings(environ=None) -> Settings:
    """Build Settings from ``environ`` (defaults to the process env + .env)."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    base_dir = os.path.dirname(os.path.abspath(__file__))
    models = _split_list(environ.get('GEMINI_MODELS', '')) or list(DEFAULT_MODELS)
    platforms = _split_list(environ.get('JOB_PLATFORMS', '')) or list(DEFAULT_PLATFORMS)

    try:
        return Settings(
            gemini_api_key=environ.get('GEMINI_API_KEY', ''),
            gemini_base_url=environ.get('GEMINI_BASE_URL', Settings.gemini_base_url),
            models=models,
            llm_timeout=float(environ.get('LLM_TIMEOUT', '120')),
            llm_temperature=float(environ.get('LLM_TEMPERATURE', '0.4')),
            llm_max_tokens=int(environ.get('LLM_MAX_TOKENS', '8000')),
            rate_limit_backoff=float(environ.get('RATE_LIMIT_BACKOFF', '2')),
            generation_max_attempts=int(environ.get('GENERATION_MAX_ATTEMPTS', '3')),
            database_url=_database_url(environ.get('DATABASE_URL', ''), base_dir),
            admin_token=environ.get('ADMIN_TOKEN', 'change-me-in-production'),
            secret_key=environ.get('SECRET_KEY', ''),
            platforms=platforms,
        )
    except ValueError as e:
        raise ConfigError(f'Invalid numeric setting: {e}') from e
