"""
Package solver - Passo implicito e ciclo temporale
"""

from .tridiagonal import TridiagonalStepper, SweepCoefficients
from .matrix_builder import build_implicit_system, solve_implicit_step, residual_norm
from .transient import SimulationDriver, SimulationStatus, SolverConfig, run_transient_simulation

__all__ = [
    'TridiagonalStepper',
    'SweepCoefficients',
    'build_implicit_system',
    'solve_implicit_step',
    'residual_norm',
    'SimulationDriver',
    'SimulationStatus',
    'SolverConfig',
    'run_transient_simulation',
]
