"""
rod_heat/io/__init__.py - Modulo I/O per risultati e salvataggio
"""

from .state_manager import (
    StateManager,
    TransientResults
)

__all__ = [
    'StateManager',
    'TransientResults'
]
