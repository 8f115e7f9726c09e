"""
Package analysis - Analisi post-processing
"""

from .steady_profile import (
    ProfileAnalyzer,
    ProfileResult,
    node_positions,
    steady_state_profile,
)

__all__ = [
    'ProfileAnalyzer',
    'ProfileResult',
    'node_positions',
    'steady_state_profile',
]
