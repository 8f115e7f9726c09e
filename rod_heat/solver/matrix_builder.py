"""
matrix_builder.py - Costruzione del sistema implicito in forma sparsa

=============================================================================
MODULE OVERVIEW
=============================================================================

Assembla esplicitamente il sistema lineare di un passo Backward Euler
sui soli nodi interni 1..N-1:

    (1+2λ)·T[i] - λ·T[i-1] - λ·T[i+1] = T_old[i]

I nodi di bordo T[0] = Tl e T[N] = Tr sono noti e passano al termine noto:

    b[1]   += λ·Tl
    b[N-1] += λ·Tr

La matrice è tridiagonale, simmetrica, definita positiva (M-matrice per λ >= 0).
Viene risolta con scipy.sparse.linalg.spsolve: è il metodo "direct",
utile come riferimento per il double sweep.
=============================================================================
"""

from typing import Tuple

import numpy as np
from scipy import sparse
from scipy.sparse import linalg as splinalg

from ..core.config import BoundaryConditions
from ..core.errors import NumericalInstabilityError


def build_implicit_system(
    T_old: np.ndarray,
    diffusion_number: float,
    boundary: BoundaryConditions
) -> Tuple[sparse.csr_matrix, np.ndarray]:
    """
    Costruisce A·T_int = b per i nodi interni.

    Args:
        T_old: Campo al passo precedente [N+1]
        diffusion_number: λ = α·τ/h²
        boundary: Temperature Dirichlet

    Returns:
        (A, b): A csr (N-1)x(N-1), b (N-1,)
    """
    N = T_old.shape[0] - 1
    n_int = N - 1
    if n_int < 2:
        raise ValueError(f"Campo troppo corto ({T_old.shape[0]} elementi): servono almeno 3 nodi")

    lam = float(diffusion_number)

    main = np.full(n_int, 1.0 + 2.0 * lam)
    off = np.full(n_int - 1, -lam)
    A = sparse.diags([off, main, off], offsets=[-1, 0, 1], format='csr')

    b = np.array(T_old[1:N], dtype=np.float64)
    b[0] += lam * boundary.left_temperature
    b[-1] += lam * boundary.right_temperature

    return A, b


def solve_implicit_step(
    T: np.ndarray,
    diffusion_number: float,
    boundary: BoundaryConditions
) -> np.ndarray:
    """
    Avanza il campo di un passo risolvendo il sistema sparso (in place).

    Stesso contratto di TridiagonalStepper.step: al termine T[0] = Tl e
    T[N] = Tr.
    """
    N = T.shape[0] - 1
    A, b = build_implicit_system(T, diffusion_number, boundary)

    # spsolve restituisce nan su matrice singolare (con warning)
    T_int = splinalg.spsolve(A.tocsc(), b)
    T_int = np.atleast_1d(T_int)
    if not np.all(np.isfinite(T_int)):
        raise NumericalInstabilityError(
            f"Soluzione non finita del sistema implicito (lambda={diffusion_number!r})"
        )

    T[0] = boundary.left_temperature
    T[N] = boundary.right_temperature
    T[1:N] = T_int
    return T


def residual_norm(
    T_new: np.ndarray,
    T_old: np.ndarray,
    diffusion_number: float,
    boundary: BoundaryConditions
) -> float:
    """Norma infinito del residuo ||A·T_new - b|| sui nodi interni"""
    A, b = build_implicit_system(T_old, diffusion_number, boundary)
    N = T_new.shape[0] - 1
    return float(np.max(np.abs(A @ T_new[1:N] - b)))
