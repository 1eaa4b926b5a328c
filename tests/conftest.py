"""
Pytest configuration and shared fixtures
"""
import os
import sys
import random
import pytest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'a9f3c1e7b2d84f6e0c5a7b9d1e3f5a7c9e1b3d5f7a9c1e3b5d7f9a1c3e5b7d9f'
    os.environ.pop('DATABASE_URL', None)

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def local_store(tmp_path):
    """Local JSON table store in a temporary directory"""
    from crm_data_layer import LocalBlobStore, LocalDataStore
    return LocalDataStore(LocalBlobStore(str(tmp_path / 'local_store')))


@pytest.fixture
def db_session_factory():
    """Session factory bound to an in-memory SQLite database with all tables"""
    from database.connection import init_db
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db_store(db_session_factory):
    """DatabaseStore over the in-memory SQLite database"""
    from crm_db_layer import DatabaseStore
    return DatabaseStore(session_factory=db_session_factory)


@pytest.fixture
def seeded_random():
    """Deterministic random source for synthesized coordinates"""
    return random.Random(42)


@pytest.fixture
def resolver(seeded_random):
    """Catalog-only address resolver"""
    from services.address_resolver import AddressResolver
    return AddressResolver(rng=seeded_random)


@pytest.fixture
def mock_surface(resolver):
    """Ready mock map surface"""
    from services.map_surface import MockMapSurface
    surface = MockMapSurface(resolver=resolver)
    surface.create_map()
    return surface


@pytest.fixture
def pin_store(local_store):
    from services.pin_store import PinStore
    return PinStore(local_store)


@pytest.fixture
def measurement_log(local_store):
    from services.measurement_log import MeasurementLog
    return MeasurementLog(local_store)


@pytest.fixture
def workflow(resolver, pin_store, measurement_log, mock_surface):
    """Offline measurement workflow wired to the mock map"""
    from services.measurement_workflow import MeasurementWorkflow
    return MeasurementWorkflow(resolver, pin_store, measurement_log, map_surface=mock_surface)


@pytest.fixture
def app(tmp_path, test_env_vars):
    """Flask app on TestingConfig with storage under tmp_path"""
    from config import TestingConfig
    from app_init import create_app
    return create_app(TestingConfig, {
        'LOCAL_STORE_FOLDER': str(tmp_path / 'local_store'),
        'OUTPUT_FOLDER': str(tmp_path / 'outputs'),
        'LOG_DIR': str(tmp_path / 'logs'),
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_client_data():
    """Fixture providing sample client data"""
    return {
        'name': 'Green Acres Landscaping',
        'email': 'office@greenacres.example.com',
        'phone': '(555) 123-4567',
        'address': '123 Main St, New York, NY 10001'
    }


@pytest.fixture
def square_path():
    """Roughly 100 ft x 100 ft square near the default map centre"""
    # 100 ft is about 0.000274 deg of latitude; longitude scaled by cos(40.7128)
    return [
        {'lat': 40.7128, 'lng': -74.0060},
        {'lat': 40.7128, 'lng': -74.0060 + 0.0003623},
        {'lat': 40.7128 + 0.0002743, 'lng': -74.0060 + 0.0003623},
        {'lat': 40.7128 + 0.0002743, 'lng': -74.0060},
    ]
