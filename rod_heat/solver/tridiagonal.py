"""
tridiagonal.py - Passo temporale implicito con il metodo del double sweep

=============================================================================
IMPLICIT STEP - DOUBLE SWEEP (THOMAS ALGORITHM)
=============================================================================

Equazione del calore 1D a proprietà costanti:

    ρ·c·∂T/∂t = k·∂²T/∂x²

Backward Euler nel tempo, differenze centrate nello spazio:

    -λ·T[i-1] + (1+2λ)·T[i] - λ·T[i+1] = T_old[i],    i = 1..N-1

    con λ = α·τ/h²  (numero di diffusione)

Forma canonica del sistema tridiagonale:

    a_i·T[i-1] + b_i·T[i] + c_i·T[i+1] = d_i

    a_i = λ,  b_i = -(1+2λ),  c_i = λ,  d_i = -T_old[i]

Soluzione esatta in O(N):
    1. Forward sweep:  P[0] = 0, Q[0] = Tl
                       P[i] = -c_i / (a_i·P[i-1] + b_i)
                       Q[i] = (d_i - a_i·Q[i-1]) / (a_i·P[i-1] + b_i)
    2. Bordo destro:   T[N] = Tr
    3. Back substitution: T[i] = P[i]·T[i+1] + Q[i],  i = N-1..1

INDICIZZAZIONE DEL CAMPO:
    Il campo ha N+1 elementi. T[0] è il bordo sinistro, T[N] è lo slot del
    bordo destro, i nodi 1..N-1 sono risolti. Lo slot N è distinto
    dall'ultimo nodo interno N-1: questa asimmetria è parte del modello
    (cambiarla sposta la mesh e cambia la fisica simulata).

Per λ >= 0 la matrice è a dominanza diagonale e |a_i·P[i-1] + b_i| >= 1 + λ,
quindi il denominatore non si annulla mai.
=============================================================================
"""

import math
from dataclasses import dataclass

import numpy as np

from ..core.config import BoundaryConditions
from ..core.errors import NumericalInstabilityError

# Soglia sotto la quale il denominatore del sweep è considerato nullo
PIVOT_TOLERANCE = 1e-12


@dataclass
class SweepCoefficients:
    """
    Coefficienti del double sweep, memoria di lavoro di un singolo passo.

    P, Q hanno lunghezza N e vengono riscritti ad ogni passo.
    """
    P: np.ndarray
    Q: np.ndarray

    @classmethod
    def zeros(cls, node_count: int) -> "SweepCoefficients":
        return cls(P=np.zeros(node_count), Q=np.zeros(node_count))

    def reset(self):
        self.P.fill(0.0)
        self.Q.fill(0.0)


class TridiagonalStepper:
    """
    Avanza il campo di temperatura di un passo implicito.

    Il campo viene modificato in place; lo stepper possiede solo i
    coefficienti P, Q.
    """

    def __init__(self, node_count: int, diffusion_number: float, boundary: BoundaryConditions):
        """
        Args:
            node_count: Numero di nodi N (campo di lunghezza N+1)
            diffusion_number: λ = α·τ/h²
            boundary: Temperature Dirichlet Tl, Tr
        """
        self.node_count = node_count
        self.diffusion_number = float(diffusion_number)
        self.boundary = boundary
        self._coeffs = SweepCoefficients.zeros(node_count)

    @property
    def coefficients(self) -> SweepCoefficients:
        """Coefficienti dell'ultimo passo (sola lettura)"""
        P = self._coeffs.P.view()
        Q = self._coeffs.Q.view()
        P.flags.writeable = False
        Q.flags.writeable = False
        return SweepCoefficients(P=P, Q=Q)

    def step(self, T: np.ndarray) -> np.ndarray:
        """
        Calcola il campo al livello temporale successivo.

        Args:
            T: Campo di temperatura [N+1], modificato in place

        Returns:
            Lo stesso array T

        Raises:
            NumericalInstabilityError: denominatore nullo o non finito
        """
        N = self.node_count
        if T.shape != (N + 1,):
            raise ValueError(f"Campo di dimensione {T.shape}, attesa ({N + 1},)")

        lam = self.diffusion_number
        P = self._coeffs.P
        Q = self._coeffs.Q
        self._coeffs.reset()

        # coefficienti della forma canonica (costanti lungo la barra)
        a = lam
        b = -(1.0 + 2.0 * lam)
        c = lam

        # condizione al bordo sinistro
        P[0] = 0.0
        Q[0] = self.boundary.left_temperature

        # forward sweep
        for i in range(1, N):
            d = -T[i]
            den = a * P[i - 1] + b
            if not math.isfinite(den) or abs(den) < PIVOT_TOLERANCE:
                raise NumericalInstabilityError(
                    f"Denominatore del sweep degenere al nodo {i}: {den!r} (lambda={lam!r})"
                )
            P[i] = -c / den
            Q[i] = (d - a * Q[i - 1]) / den

        # condizioni al bordo (slot N a destra)
        T[N] = self.boundary.right_temperature
        T[0] = self.boundary.left_temperature

        # back substitution
        for i in range(N - 1, 0, -1):
            T[i] = P[i] * T[i + 1] + Q[i]

        return T
