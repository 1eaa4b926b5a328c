"""
Application Initialization Module
Initializes the Flask app with all infrastructure components and services
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
from crm_data_layer import LocalBlobStore, LocalDataStore
from services.address_resolver import AddressResolver
from services.crm_repository import CRMRepository
from services.geocoding import GoogleGeocoder
from services.map_surface import mount_map_surface
from services.measurement_log import MeasurementLog
from services.measurement_workflow import MeasurementWorkflow
from services.pin_store import PinStore
import logging

logger = logging.getLogger(__name__)


def create_app(config_class=None, config_overrides=None):
    """
    Application factory that creates and configures Flask app with all infrastructure

    Args:
        config_class: Configuration class, defaults to the one selected by FLASK_ENV
        config_overrides: Extra config values applied after the class (tests use
            this to point storage at a temporary directory)

    Returns:
        Configured Flask application instance

    Raises:
        StoragePolicyError: In production without DATABASE_URL
    """
    app = Flask(__name__)

    app.config.from_object(config_class or get_config())
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("🚀 Initializing Yardstick CRM")
    logger.info("=" * 60)
    logger.info(f"Environment: {os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # Setup security (CORS, headers, error handlers)
    setup_security(app, app.config)

    create_required_directories(app)

    initialize_services(app)

    # Blueprints validate the storage policy before registering
    from app import register_blueprints
    register_blueprints(app)

    register_health_checks(app)

    logger.info("✅ Application initialization complete")
    logger.info("=" * 60)

    return app


def create_required_directories(app):
    """
    Create all required application directories

    Args:
        app: Flask application instance
    """
    directories = [
        app.config['LOCAL_STORE_FOLDER'],
        app.config['OUTPUT_FOLDER'],
        app.config.get('LOG_DIR', 'logs'),
    ]

    for directory in directories:
        try:
            os.makedirs(directory, exist_ok=True)
            logger.debug(f"Directory ensured: {directory}")
        except OSError as e:
            logger.error(f"Failed to create directory {directory}: {e}")

    logger.info(f"✅ Created {len(directories)} required directories")


def initialize_remote_store(app):
    """
    Database store when one is configured and reachable, else None

    Args:
        app: Flask application instance
    """
    from config import has_database
    if not app.config.get('USE_DATABASE') or not has_database():
        logger.info("No database configured - using local JSON store only")
        return None

    from crm_db_layer import DatabaseStore
    store = DatabaseStore()
    if store.ping():
        logger.info("✅ Database store online")
    else:
        logger.warning("⚠️  Database configured but unreachable - writes stay local until it returns")
    return store


def initialize_services(app):
    """
    Wire stores, resolver, map surface, workflow and CRM repository

    Services are stored in app.extensions['yardstick'].

    Args:
        app: Flask application instance
    """
    local_store = LocalDataStore(LocalBlobStore(app.config['LOCAL_STORE_FOLDER']))
    remote_store = initialize_remote_store(app)

    def is_online():
        return remote_store is not None and remote_store.ping()

    geocoder = None
    api_key = app.config.get('GOOGLE_MAPS_API_KEY')
    if api_key:
        geocoder = GoogleGeocoder(api_key, timeout=app.config.get('GEOCODE_TIMEOUT', 10))

    resolver = AddressResolver(geocoder=geocoder, limit=app.config.get('ADDRESS_SEARCH_LIMIT', 5))
    map_surface = mount_map_surface(app.config, resolver=resolver, geocoder=geocoder)
    pins = PinStore(local_store, remote_store, is_online)
    measurements = MeasurementLog(local_store, remote_store, is_online)
    if remote_store is not None:
        pins.load()
        measurements.load()

    workflow = MeasurementWorkflow(
        resolver, pins, measurements,
        map_surface=map_surface,
        max_dimension=app.config.get('MEASUREMENT_MAX_DIMENSION_FT', 10000)
    )

    @app.before_request
    def reset_workflow_notices():
        workflow.begin_request()

    # CRM records live in the database when configured, otherwise locally
    crm = CRMRepository(remote_store or local_store, pins=pins)

    app.extensions['yardstick'] = {
        'local_store': local_store,
        'remote_store': remote_store,
        'store': remote_store or local_store,
        'resolver': resolver,
        'map_surface': map_surface,
        'workflow': workflow,
        'crm': crm,
    }

    logger.info(f"✅ Services initialized (map provider: {map_surface.provider})")
    return app.extensions['yardstick']
