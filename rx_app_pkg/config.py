# rx_app_pkg/config.py
import os


class Config:
    """Base configuration settings."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you_REALLY_should_set_a_secret_key_in_env'
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'you_REALLY_should_set_a_JWT_secret_key_in_env'
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRATION_MINUTES = int(os.environ.get('JWT_EXPIRATION_MINUTES', 60))

    # Default to SQLite if DATABASE_URL is not set in the environment
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///rx_default.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # start_date / end_date wire format
    PRESCRIPTION_DATE_FORMAT = os.environ.get('PRESCRIPTION_DATE_FORMAT', '%Y-%m-%d')


class DevelopmentConfig(Config):
    """Development-specific configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or os.environ.get('DATABASE_URL') or 'sqlite:///rx_dev.db'


class TestingConfig(Config):
    """Testing-specific configuration."""
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('TEST_DATABASE_URL') or 'sqlite:///:memory:'
    JWT_EXPIRATION_MINUTES = 5


class ProductionConfig(Config):
    """Production-specific configuration."""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///prod_fallback.db'

    @classmethod
    def check_secrets(cls):
        if cls.SECRET_KEY == 'you_REALLY_should_set_a_secret_key_in_env':
            raise ValueError("SECRET_KEY not set via environment variable for production")
        if cls.JWT_SECRET_KEY == 'you_REALLY_should_set_a_JWT_secret_key_in_env':
            raise ValueError("JWT_SECRET_KEY not set via environment variable for production")


def get_config(config_name=None):
    """Resolve a config class from a name, falling back to FLASK_ENV."""
    env = (config_name or os.environ.get('FLASK_ENV', 'development')).lower()
    if env == 'production':
        ProductionConfig.check_secrets()
        return ProductionConfig
    elif env == 'testing':
        return TestingConfig
    return DevelopmentConfig
