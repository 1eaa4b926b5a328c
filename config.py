"""
Centralized Configuration for Yardstick CRM
Manages environment-specific settings, storage policy, and map/measurement settings.
"""
import os
from datetime import timedelta


class StoragePolicyError(RuntimeError):
    """Raised when the storage configuration is not allowed for the environment"""
    pass


class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # 5MB max request body

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With']

    # Database Settings
    USE_DATABASE = os.environ.get('USE_DATABASE', 'true').lower() == 'true'
    DATABASE_URL = os.environ.get('DATABASE_URL')

    # File Storage Paths
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    LOCAL_STORE_FOLDER = os.environ.get('LOCAL_STORE_FOLDER', 'local_store')
    OUTPUT_FOLDER = 'outputs'

    # Google Maps Platform
    GOOGLE_MAPS_API_KEY = os.environ.get('GOOGLE_MAPS_API_KEY')
    MAP_PROBE_TIMEOUT = float(os.environ.get('MAP_PROBE_TIMEOUT', '2.0'))  # seconds
    GEOCODE_TIMEOUT = float(os.environ.get('GEOCODE_TIMEOUT', '10'))  # seconds
    MAP_DEFAULT_CENTER = (40.7128, -74.0060)
    MAP_DEFAULT_ZOOM = 13
    MAP_DEFAULT_TYPE = 'roadmap'
    MAP_MEASURE_AUTO_COMPLETE = 3  # points; None means finish explicitly

    # Measurement & Search
    MEASUREMENT_MAX_DIMENSION_FT = 10000
    ADDRESS_SEARCH_LIMIT = 5

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')

    # Session Configuration
    SESSION_PERMANENT = False
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    # Allow all CORS in development
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    # Strict CORS in production
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'https://yardstick-crm.onrender.com').split(',')
    # Force HTTPS
    PREFERRED_URL_SCHEME = 'https'
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    USE_DATABASE = False  # Local JSON store only
    GOOGLE_MAPS_API_KEY = None  # Never probe the live map API from tests
    LOG_LEVEL = 'WARNING'


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config():
    """Get configuration based on FLASK_ENV environment variable"""
    env = os.environ.get('FLASK_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)


# ==============================================================================
# STORAGE POLICY
# ==============================================================================

def get_app_env():
    """Current environment name ('development', 'production', 'testing')"""
    env = os.environ.get('FLASK_ENV', 'development').lower()
    return env if env in config_by_name else 'development'


def is_production():
    return get_app_env() == 'production'


def has_database():
    """True when a DATABASE_URL is configured and database use is not disabled"""
    if os.environ.get('USE_DATABASE', 'true').lower() != 'true':
        return False
    return bool(os.environ.get('DATABASE_URL'))


def get_storage_mode():
    """
    Resolve where records are persisted.

    Returns:
        'database' when DATABASE_URL is configured (writes are mirrored remotely),
        'json_fallback' otherwise (local JSON store only)
    """
    return 'database' if has_database() else 'json_fallback'


def allow_json_persistence():
    """Local-only persistence is allowed everywhere except production"""
    return not is_production() or has_database()


def validate_storage_config():
    """
    Fail fast on storage misconfiguration.

    Raises:
        StoragePolicyError: If running in production without DATABASE_URL
    """
    if is_production() and not has_database():
        raise StoragePolicyError(
            "DATABASE_URL must be configured in production. "
            "Local-only persistence is for development and testing."
        )
    return get_storage_mode()
