"""
Configuration management for the dive shop loyalty service.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _split_emails(value: str) -> list:
    return [email.strip().lower() for email in value.split(',') if email.strip()]


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Profile store backend: 'sql', 'firestore' or 'memory'
    PROFILE_STORE = os.getenv('PROFILE_STORE', 'sql')
    FIRESTORE_PROJECT = os.getenv('FIRESTORE_PROJECT')

    # Staff allowed to run loyalty dashboard actions
    STAFF_EMAILS = _split_emails(os.getenv('STAFF_EMAILS', ''))

    # The yearly check runs at midnight on January 1st in the shop's timezone
    LOYALTY_TIMEZONE = os.getenv('LOYALTY_TIMEZONE', 'America/New_York')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///diveloyalty_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url or 'sqlite:///diveloyalty.db'

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, too short or looks like a placeholder
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        lower_key = cls._secret_key.lower()
        for pattern in ['dev', 'change', 'default', 'test', 'secret', 'password']:
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!"
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )

        return cls._secret_key

    SECRET_KEY = _secret_key  # Validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    PROFILE_STORE = 'memory'
    STAFF_EMAILS = ['staff@diveshop.test']


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str, config) -> None:
    """
    Validate configuration before app startup.

    Args:
        config_name: The configuration environment name
        config: The loaded Flask config mapping

    Raises:
        RuntimeError: If the production secret key is unsafe
        ConfigurationError: If the selected profile store is misconfigured
    """
    from .utils.exceptions import ConfigurationError

    if config_name == 'production':
        ProductionConfig.validate_secret_key()

    backend = config.get('PROFILE_STORE')
    if backend not in ('sql', 'firestore', 'memory'):
        raise ConfigurationError(f"Unknown PROFILE_STORE '{backend}'")
    if backend == 'firestore' and not config.get('FIRESTORE_PROJECT'):
        raise ConfigurationError('FIRESTORE_PROJECT must be set when PROFILE_STORE=firestore')
