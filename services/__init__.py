"""
Services package for Yardstick CRM.
Contains the measurement and mapping workflow and the CRM repository.
"""

from services.address_resolver import AddressResolver, ResolvedAddress
from services.crm_repository import CRMRepository
from services.map_surface import MapSurface, mount_map_surface
from services.measurement_log import MeasurementLog
from services.measurement_workflow import MeasurementWorkflow, Notice
from services.pin_store import PinStore

__all__ = [
    'AddressResolver',
    'ResolvedAddress',
    'CRMRepository',
    'MapSurface',
    'mount_map_surface',
    'MeasurementLog',
    'MeasurementWorkflow',
    'Notice',
    'PinStore'
]
