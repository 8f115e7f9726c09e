"""
Package rod_heat - Conduzione termica transitoria 1D in una barra
"""

from .core import (
    SimulationConfig, MeshConfig, MaterialProperties, TimeConfig,
    BoundaryConditions, MaterialManager, load_config,
    RodHeatError, ConfigurationError, NumericalInstabilityError,
)

from .solver import (
    TridiagonalStepper, SweepCoefficients,
    SimulationDriver, SimulationStatus, SolverConfig,
    run_transient_simulation,
)

from .io import TransientResults, StateManager

from .analysis import ProfileAnalyzer, ProfileResult, steady_state_profile

__version__ = "0.1.0"
__author__ = "Rod Heat Simulation Team"
