"""
Health Check & Monitoring Endpoints
Liveness, readiness and metrics for deployment health checks
"""
import os
import sys
import time
import psutil
from datetime import datetime
from typing import Dict, Any
from flask import Blueprint, jsonify, current_app
import logging

logger = logging.getLogger(__name__)

# Create Blueprint for health check routes
health_bp = Blueprint('health', __name__)

SERVICE_NAME = 'yardstick-crm'
SERVICE_VERSION = '1.0.0'

# Track application start time
START_TIME = time.time()


def get_system_metrics() -> Dict[str, Any]:
    """
    Get basic process metrics

    Returns:
        Dictionary of system metrics, empty if psutil cannot read them
    """
    try:
        process = psutil.Process()

        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': process.memory_info().rss / 1024 / 1024,
            'memory_percent': process.memory_percent(),
            'threads': process.num_threads(),
            'open_files': len(process.open_files()),
        }
    except (psutil.Error, OSError) as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    uptime_seconds = time.time() - START_TIME

    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_minutes': round(uptime_seconds / 60, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_storage(app) -> Dict[str, Any]:
    """
    Check the local store is writable and, when configured, the database answers

    Args:
        app: Flask application instance
    """
    services = app.extensions.get('yardstick', {})
    local_store = services.get('local_store')
    remote_store = services.get('remote_store')

    local_ok = bool(local_store and local_store.ping())
    status = {
        'mode': app.config.get('STORAGE_MODE', 'json_fallback'),
        'local_writable': local_ok,
        'database_configured': remote_store is not None,
        'database_reachable': None,
    }
    if remote_store is not None:
        status['database_reachable'] = remote_store.ping()
    status['healthy'] = local_ok and status['database_reachable'] is not False
    return status


def check_map_provider(app) -> Dict[str, Any]:
    """Which map surface is mounted and whether it is the degraded fallback"""
    surface = app.extensions.get('yardstick', {}).get('map_surface')
    if surface is None:
        return {'provider': None, 'state': None, 'degraded': True}
    return {
        'provider': surface.provider,
        'state': surface.state,
        'degraded': surface.degraded,
        'geocoder': bool(app.config.get('GOOGLE_MAPS_API_KEY')),
    }


def check_filesystem(app) -> Dict[str, Dict[str, bool]]:
    """Check that the directories the app writes to exist and are writable"""
    required_dirs = {
        'local_store': app.config.get('LOCAL_STORE_FOLDER', 'local_store'),
        'outputs': app.config.get('OUTPUT_FOLDER', 'outputs'),
        'logs': app.config.get('LOG_DIR', 'logs'),
    }

    filesystem_status = {}

    for name, dir_path in required_dirs.items():
        exists = os.path.exists(dir_path)
        writable = os.access(dir_path, os.W_OK) if exists else False

        filesystem_status[name] = {
            'exists': exists,
            'writable': writable,
            'healthy': exists and writable
        }

    return filesystem_status


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint
    Returns 200 if application is running
    """
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """
    Readiness probe endpoint
    Returns 200 when storage is usable; a degraded map surface does not block readiness
    """
    try:
        storage = check_storage(current_app)
        map_provider = check_map_provider(current_app)
        is_ready = storage['healthy']

        response = {
            'status': 'ready' if is_ready else 'not_ready',
            'timestamp': datetime.utcnow().isoformat(),
            'checks': {
                'storage': storage,
                'map': map_provider,
            }
        }

        return jsonify(response), 200 if is_ready else 503

    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return jsonify({
            'status': 'error',
            'error': str(e),
            'timestamp': datetime.utcnow().isoformat()
        }), 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """
    Basic metrics endpoint
    Returns process metrics and application statistics
    """
    try:
        response = {
            'timestamp': datetime.utcnow().isoformat(),
            'service': SERVICE_NAME,
            'version': SERVICE_VERSION,
            'environment': os.environ.get('FLASK_ENV', 'production'),
            'uptime': get_uptime(),
            'system': get_system_metrics(),
            'storage_mode': current_app.config.get('STORAGE_MODE', 'json_fallback'),
            'map': check_map_provider(current_app),
            'filesystem': check_filesystem(current_app),
            'python_version': sys.version.split()[0]
        }

        return jsonify(response), 200

    except Exception as e:
        logger.error(f"Metrics collection failed: {e}")
        return jsonify({
            'status': 'error',
            'error': str(e),
            'timestamp': datetime.utcnow().isoformat()
        }), 500


@health_bp.route('/ping', methods=['GET'])
def ping():
    """Simple ping endpoint for basic connectivity tests"""
    return 'pong', 200


def register_health_checks(app):
    """
    Register health check blueprint with Flask app

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health check endpoints registered")
    logger.info("Available endpoints: /api/health, /api/ready, /api/metrics, /api/ping")
