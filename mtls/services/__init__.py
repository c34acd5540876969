"""
Services package for configuration, logging and material loading.
"""

from .config_service import ConfigService
from .logging_service import LoggingService, JSONFormatter, OperationTiming, PerformanceMonitor
from .material_service import MaterialService

__all__ = [
    'ConfigService',
    'LoggingService',
    'JSONFormatter',
    'OperationTiming',
    'PerformanceMonitor',
    'MaterialService'
]
