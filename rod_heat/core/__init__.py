"""
Package core - Configurazione, materiali ed eccezioni
"""

from .errors import RodHeatError, ConfigurationError, NumericalInstabilityError
from .materials import MaterialProperties, MaterialManager, MATERIALS
from .config import (
    MeshConfig, TimeConfig, BoundaryConditions, SimulationConfig,
    load_config, parse_option_assignment,
)

__all__ = [
    'RodHeatError',
    'ConfigurationError',
    'NumericalInstabilityError',
    'MaterialProperties',
    'MaterialManager',
    'MATERIALS',
    'MeshConfig',
    'TimeConfig',
    'BoundaryConditions',
    'SimulationConfig',
    'load_config',
    'parse_option_assignment',
]
