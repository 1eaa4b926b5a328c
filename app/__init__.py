"""
Yardstick CRM - Application Package

This package contains the modular backend structure:
- api/: HTTP route handlers (Flask Blueprints)
- utils/: Shared helpers for the blueprints

The app factory and core Flask setup remain in app_init.py at the project root.
Business logic lives in the root services/ package.

STORAGE POLICY:
- Production: DATABASE_URL is REQUIRED. Pins and measurements are still written
  locally first and mirrored to the database.
- Development/testing: Database preferred, local JSON store alone is allowed.
"""

import logging

logger = logging.getLogger(__name__)

# Import blueprints
from app.api.properties import properties_bp
from app.api.measurements import measurements_bp
from app.api.crm import crm_bp


def validate_storage_policy():
    """
    Validate storage configuration at startup.

    MUST be called during app initialization so production never runs on
    local storage alone.

    Raises:
        StoragePolicyError: If production mode without DATABASE_URL
    """
    from config import validate_storage_config, get_app_env, has_database, get_storage_mode

    env = get_app_env()
    db_configured = has_database()
    storage_mode = get_storage_mode()

    logger.info(f"🔧 Environment: {env.upper()}")
    logger.info(f"🗄️  Database configured: {db_configured}")
    logger.info(f"💾 Storage mode: {storage_mode}")

    # Raises StoragePolicyError in production without a database
    validate_storage_config()

    if storage_mode == 'database':
        logger.info("✅ Using PostgreSQL database with local JSON mirror")
    else:
        logger.warning("⚠️  Using local JSON store only (development mode only)")

    return storage_mode


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.

    Args:
        app: Flask application instance

    Raises:
        StoragePolicyError: If production mode without DATABASE_URL configured
    """
    # Validate storage policy FIRST (fail fast in production without DB)
    storage_mode = validate_storage_policy()
    app.config['STORAGE_MODE'] = storage_mode

    app.register_blueprint(properties_bp)
    app.register_blueprint(measurements_bp)
    app.register_blueprint(crm_bp)


__all__ = ['register_blueprints', 'validate_storage_policy', 'properties_bp', 'measurements_bp', 'crm_bp']
