"""
Tests for configuration system and storage policy
"""
import os
import pytest
from config import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    StoragePolicyError,
    get_config,
    get_app_env,
    has_database,
    get_storage_mode,
    allow_json_persistence,
    validate_storage_config
)


@pytest.mark.unit
class TestBaseConfig:
    """Tests for base configuration"""

    def test_base_config_has_secret_key(self):
        """Test that base config has a secret key"""
        config = Config()
        assert hasattr(config, 'SECRET_KEY')
        assert config.SECRET_KEY is not None

    def test_base_config_has_max_content_length(self):
        """Test that base config has max content length"""
        config = Config()
        assert config.MAX_CONTENT_LENGTH == 5 * 1024 * 1024

    def test_base_config_has_cors_settings(self):
        """Test that base config has CORS settings"""
        config = Config()
        assert hasattr(config, 'CORS_ORIGINS')
        assert 'GET' in config.CORS_METHODS
        assert 'DELETE' in config.CORS_METHODS

    def test_base_config_has_map_defaults(self):
        """Test that the map starts over New York at zoom 13"""
        config = Config()
        assert config.MAP_DEFAULT_CENTER == (40.7128, -74.0060)
        assert config.MAP_DEFAULT_ZOOM == 13
        assert config.MAP_MEASURE_AUTO_COMPLETE == 3

    def test_base_config_has_measurement_limits(self):
        """Test dimension bound and search result limit"""
        config = Config()
        assert config.MEASUREMENT_MAX_DIMENSION_FT == 10000
        assert config.ADDRESS_SEARCH_LIMIT == 5

    def test_base_config_has_logging_settings(self):
        """Test that base config has logging settings"""
        config = Config()
        assert config.LOG_FILE
        assert config.LOG_DIR


@pytest.mark.unit
class TestEnvironmentConfigs:
    """Tests for environment-specific configuration"""

    def test_development_config_has_debug(self):
        config = DevelopmentConfig()
        assert config.DEBUG is True
        assert config.LOG_LEVEL == 'DEBUG'
        assert '*' in config.CORS_ORIGINS

    def test_production_config_has_secure_cookies(self):
        """Test that production config has secure cookies"""
        config = ProductionConfig()
        assert config.DEBUG is False
        assert config.SESSION_COOKIE_SECURE is True
        assert config.SESSION_COOKIE_HTTPONLY is True
        assert config.PREFERRED_URL_SCHEME == 'https'

    def test_testing_config_is_offline(self):
        """Test that testing config never touches the database or map API"""
        config = TestingConfig()
        assert config.TESTING is True
        assert config.USE_DATABASE is False
        assert config.GOOGLE_MAPS_API_KEY is None


@pytest.mark.unit
class TestGetConfig:
    """Tests for configuration selector"""

    def test_get_config_returns_development_by_default(self, monkeypatch):
        monkeypatch.delenv('FLASK_ENV', raising=False)
        assert get_config() == DevelopmentConfig

    @pytest.mark.parametrize('env,expected', [
        ('production', ProductionConfig),
        ('testing', TestingConfig),
        ('unknown', DevelopmentConfig),
    ])
    def test_get_config_follows_flask_env(self, monkeypatch, env, expected):
        monkeypatch.setenv('FLASK_ENV', env)
        assert get_config() == expected


@pytest.mark.unit
class TestStoragePolicy:
    """Tests for storage mode resolution"""

    def test_unknown_env_is_development(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'staging')
        assert get_app_env() == 'development'

    def test_no_database_url_means_json_fallback(self, monkeypatch):
        monkeypatch.delenv('DATABASE_URL', raising=False)
        assert has_database() is False
        assert get_storage_mode() == 'json_fallback'

    def test_database_url_means_database_mode(self, monkeypatch):
        monkeypatch.setenv('DATABASE_URL', 'postgresql://localhost/yardstick')
        monkeypatch.setenv('USE_DATABASE', 'true')
        assert has_database() is True
        assert get_storage_mode() == 'database'

    def test_use_database_false_disables_database(self, monkeypatch):
        monkeypatch.setenv('DATABASE_URL', 'postgresql://localhost/yardstick')
        monkeypatch.setenv('USE_DATABASE', 'false')
        assert has_database() is False

    def test_production_without_database_is_rejected(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'production')
        monkeypatch.delenv('DATABASE_URL', raising=False)
        assert allow_json_persistence() is False
        with pytest.raises(StoragePolicyError):
            validate_storage_config()

    def test_development_without_database_is_allowed(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'development')
        monkeypatch.delenv('DATABASE_URL', raising=False)
        assert allow_json_persistence() is True
        assert validate_storage_config() == 'json_fallback'
