"""
steady_profile.py - Analisi del profilo di temperatura

=============================================================================
PROFILE ANALYSIS
=============================================================================

Questo modulo calcola:
- Profilo stazionario lineare tra i due bordi Dirichlet
- Scostamento del campo corrente dallo stazionario
- Verifica del principio del massimo discreto
- Energia termica accumulata per unità di sezione

EQUAZIONI PRINCIPALI:

Stazionario (∂²T/∂x² = 0):
    T(x) = Tl + (Tr - Tl)·x/L

    Sugli slot del campo (0..N, bordo destro nello slot N):
    T_i = Tl + (Tr - Tl)·i/N

Principio del massimo (schema implicito, Dirichlet costanti):
    min(Tl, T0, Tr) <= T_i <= max(Tl, T0, Tr)

Energia accumulata per unità di sezione [J/m²]:
    E = ρ·c·h·Σ (T_i - T0),   i = 1..N-1

=============================================================================
"""

from dataclasses import dataclass

import numpy as np

from ..core.config import SimulationConfig

# Tolleranza assoluta [K] per la verifica dei limiti
BOUNDS_TOLERANCE = 1e-9


def node_positions(config: SimulationConfig) -> np.ndarray:
    """Coordinate degli slot 0..N del campo, x_0 = 0 e x_N = L [m]"""
    return np.linspace(0.0, config.mesh.length, config.node_count + 1)


def steady_state_profile(config: SimulationConfig) -> np.ndarray:
    """Profilo stazionario lineare sugli slot 0..N [K]"""
    Tl = config.boundary.left_temperature
    Tr = config.boundary.right_temperature
    x = node_positions(config)
    return Tl + (Tr - Tl) * x / config.mesh.length


@dataclass
class ProfileResult:
    """Risultato dell'analisi di un campo di temperatura"""

    # Temperature nodi interni [K]
    T_min: float = 0.0
    T_max: float = 0.0
    T_mean: float = 0.0

    # Scostamento massimo dallo stazionario [K]
    max_deviation: float = 0.0

    # Principio del massimo
    lower_bound: float = 0.0
    upper_bound: float = 0.0
    within_bounds: bool = True

    # Energia accumulata rispetto a T0 [J/m²]
    E_stored: float = 0.0


class ProfileAnalyzer:
    """
    Analizzatore del campo di temperatura di una barra.
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self._steady = steady_state_profile(config)

    def analyze(self, T: np.ndarray) -> ProfileResult:
        """
        Analizza un campo [N+1].

        Args:
            T: Campo di temperatura (slot 0..N)

        Returns:
            ProfileResult
        """
        cfg = self.config
        N = cfg.node_count
        if T.shape != (N + 1,):
            raise ValueError(f"Campo di dimensione {T.shape}, attesa ({N + 1},)")

        interior = T[1:N]
        lower, upper = cfg.temperature_bounds

        result = ProfileResult(
            T_min=float(np.min(interior)),
            T_max=float(np.max(interior)),
            T_mean=float(np.mean(interior)),
            max_deviation=self.deviation_from_steady_state(T),
            lower_bound=lower,
            upper_bound=upper,
        )
        result.within_bounds = bool(
            result.T_min >= lower - BOUNDS_TOLERANCE and result.T_max <= upper + BOUNDS_TOLERANCE
        )
        result.E_stored = self.stored_energy(T)
        return result

    def deviation_from_steady_state(self, T: np.ndarray) -> float:
        """max |T_i - T_stazionario,i| [K]"""
        return float(np.max(np.abs(T - self._steady)))

    def stored_energy(self, T: np.ndarray) -> float:
        """Energia accumulata rispetto a T0, per unità di sezione [J/m²]"""
        cfg = self.config
        N = cfg.node_count
        rho_c = cfg.material.volumetric_heat_capacity
        return float(rho_c * cfg.element_size * np.sum(T[1:N] - cfg.initial_temperature))
