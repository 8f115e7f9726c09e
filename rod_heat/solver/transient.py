"""
transient.py - Driver della simulazione transitoria

=============================================================================
TRANSIENT HEAT CONDUCTION IN A ROD
=============================================================================

Integra nel tempo l'equazione del calore 1D:

    ρ·c·∂T/∂t = k·∂²T/∂x²,    T(0,t) = Tl,  T(L,t) = Tr,  T(x,0) = T0

Ciclo temporale (strettamente sequenziale):

    t = t_start
    while t < t_end:
        t += tau
        passo implicito (double sweep o sparse diretto)
        notifica dei listener: callback(T, t/t_end)

CICLO DI VITA DEL DRIVER:
    UNINITIALIZED -> CONFIGURED (set_defaults / configure)
                  -> ALLOCATED  (init_data)
                  -> RUNNING    (dentro solve)
                  -> DONE       (ciclo terminato)

Dopo ogni cambio di mesh o finestra temporale init_data() va richiamato.
Richiamare solve() senza init_data() riparte da T0.

=============================================================================
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from ..core.config import SimulationConfig
from ..core.errors import ConfigurationError
from ..io.state_manager import TransientResults
from .matrix_builder import solve_implicit_step
from .tridiagonal import TridiagonalStepper

StepListener = Callable[[np.ndarray, float], None]

# Tolleranza relativa (su tau) per il confronto t < t_end
TIME_EPS = 1e-9


class SimulationStatus(Enum):
    """Stati del driver"""
    UNINITIALIZED = "uninitialized"
    CONFIGURED = "configured"
    ALLOCATED = "allocated"
    RUNNING = "running"
    DONE = "done"


@dataclass
class SolverConfig:
    """
    Configurazione del solutore transitorio.

    Attributes:
        method: "sweep" (double sweep, default) o "direct" (scipy spsolve)
        verbose: Stampa informazioni di avanzamento e riga finale
        save_full_field: Salva il campo completo nei risultati
        save_interval: Salva ogni save_interval passi (1 = tutti)
    """
    method: str = "sweep"
    verbose: bool = False
    save_full_field: bool = False
    save_interval: int = 1

    def __post_init__(self):
        if self.method not in ("sweep", "direct"):
            raise ConfigurationError(f"Metodo sconosciuto: {self.method!r} (usa 'sweep' o 'direct')")
        if self.save_interval < 1:
            raise ConfigurationError(f"save_interval deve essere >= 1, ricevuto {self.save_interval}")


class SimulationDriver:
    """
    Possiede parametri, campo di temperatura e ciclo temporale.

    Il campo è modificato solo dal driver (tramite lo stepper); all'esterno
    arrivano solo viste in sola lettura o copie.
    """

    def __init__(self, config: Optional[SimulationConfig] = None, solver_config: Optional[SolverConfig] = None):
        self.solver_config = solver_config if solver_config is not None else SolverConfig()

        self._config: Optional[SimulationConfig] = None
        self._status = SimulationStatus.UNINITIALIZED

        # Dati allocati da init_data
        self._h: Optional[float] = None
        self._tau: Optional[float] = None
        self._T: Optional[np.ndarray] = None
        self._stepper: Optional[TridiagonalStepper] = None

        # Orologio
        self._time = 0.0
        self._step_count = 0

        self._listeners: List[StepListener] = []

        if config is not None:
            self.configure(config)

    # -------------------------------------------------------------------------
    # Configurazione
    # -------------------------------------------------------------------------

    def set_defaults(self):
        """Carica lo scenario di default"""
        self._config = SimulationConfig.defaults()
        self._status = SimulationStatus.CONFIGURED

    def configure(self, config: Optional[SimulationConfig] = None, **options):
        """
        Sostituisce la configurazione o ne sovrascrive alcune opzioni.

        Args:
            config: Nuova configurazione completa (opzionale)
            **options: Opzioni da sovrascrivere (nomi canonici o alias)

        Se cambiano lunghezza, N o finestra temporale serve di nuovo
        init_data(); le temperature e il materiale possono cambiare tra
        due solve() senza riallocare.
        """
        if config is None:
            if self._config is None:
                raise ConfigurationError("Nessuna configurazione: chiamare set_defaults() o passare config")
            config = self._config
        new_config = config.replace(**options) if options else config

        needs_init = (
            self._status in (SimulationStatus.UNINITIALIZED, SimulationStatus.CONFIGURED)
            or self._config is None
            or new_config.mesh != self._config.mesh
            or new_config.time != self._config.time
        )
        self._config = new_config

        if needs_init:
            self._status = SimulationStatus.CONFIGURED
            self._T = None
            self._stepper = None

        if self.solver_config.verbose:
            print(f"[CONFIG] {new_config.summary()}")

    def init_data(self):
        """
        Calcola h e tau e alloca campo (N+1) e coefficienti del sweep (N).
        """
        if self._config is None:
            raise ConfigurationError("init_data() chiamato prima di set_defaults()/configure()")

        cfg = self._config
        N = cfg.node_count

        self._h = cfg.element_size
        self._tau = cfg.time_step

        self._T = np.zeros(N + 1)
        self._stepper = TridiagonalStepper(N, cfg.diffusion_number, cfg.boundary)

        self._time = cfg.time.start_time
        self._step_count = 0
        self._status = SimulationStatus.ALLOCATED

        if self.solver_config.verbose:
            print(f"[INIT] N={N}, h={self._h:.4g} m, tau={self._tau:.4g} s")

    # -------------------------------------------------------------------------
    # Listener
    # -------------------------------------------------------------------------

    def add_step_listener(self, callback: StepListener):
        """Registra una callback(T, percent_done) chiamata dopo ogni passo"""
        self._listeners.append(callback)

    def remove_step_listener(self, callback: StepListener):
        """Rimuove una callback registrata (ValueError se assente)"""
        self._listeners.remove(callback)

    def _notify_step_done(self):
        if not self._listeners:
            return
        percent = self.percent_done
        for callback in list(self._listeners):
            callback(self._T.copy(), percent)

    # -------------------------------------------------------------------------
    # Soluzione
    # -------------------------------------------------------------------------

    def _reset_field(self):
        """Condizione iniziale: nodi interni a T0, slot di bordo a Tl/Tr"""
        cfg = self._config
        N = cfg.node_count
        self._T[1:N] = cfg.initial_temperature
        self._T[0] = cfg.boundary.left_temperature
        self._T[N] = cfg.boundary.right_temperature

    def _advance(self):
        cfg = self._config
        if self.solver_config.method == "direct":
            solve_implicit_step(self._T, cfg.diffusion_number, cfg.boundary)
        else:
            self._stepper.step(self._T)

    def solve(self, verbose: Optional[bool] = None) -> TransientResults:
        """
        Esegue la simulazione completa da t_start a t_end.

        Args:
            verbose: Se True stampa avanzamento ([TRANSIENT]) e riga finale
                con t, T[0] e T[N-1]. Se None usa solver_config.verbose.

        Returns:
            TransientResults con le statistiche di ogni passo salvato
        """
        if self._status in (SimulationStatus.UNINITIALIZED, SimulationStatus.CONFIGURED) or self._T is None:
            raise ConfigurationError("solve() chiamato prima di init_data()")

        verbose = self.solver_config.verbose if verbose is None else verbose
        cfg = self._config
        sc = self.solver_config

        # Temperature e materiale possono essere cambiati dopo init_data
        self._stepper.diffusion_number = cfg.diffusion_number
        self._stepper.boundary = cfg.boundary

        self._reset_field()
        self._time = cfg.time.start_time
        self._step_count = 0

        t_end = cfg.time.end_time
        tau = self._tau
        t_limit = t_end - TIME_EPS * tau

        results = TransientResults()
        results.record_field(self._time, self.percent_done, self._T, sc.save_full_field)

        if verbose:
            print(f"[TRANSIENT] Inizio simulazione")
            print(f"            t_end={t_end:g}s, tau={tau:.4g}s, lambda={cfg.diffusion_number:.4g}, "
                  f"metodo={sc.method}")

        t_start = time.time()
        self._status = SimulationStatus.RUNNING

        while self._time < t_limit:
            self._time += tau
            self._advance()
            self._step_count += 1

            if self._step_count % sc.save_interval == 0 or self._time >= t_limit:
                results.record_field(self._time, self.percent_done, self._T, sc.save_full_field)

            self._notify_step_done()

        self._status = SimulationStatus.DONE

        if verbose:
            print(f"[TRANSIENT] Completato in {time.time() - t_start:.3f} s ({self._step_count} steps)")

        if verbose:
            print(self.summary())

        return results

    def summary(self) -> str:
        """Riga riassuntiva: tempo finale, T[0] e T[N-1] (ultimo nodo interno)"""
        N = self.node_count
        return f"t={self._time:.1f} s, T0={self._T[0]:.1f} K, T={self._T[N - 1]:.1f} K"

    # -------------------------------------------------------------------------
    # Proprietà in sola lettura
    # -------------------------------------------------------------------------

    @property
    def config(self) -> Optional[SimulationConfig]:
        return self._config

    @property
    def status(self) -> SimulationStatus:
        return self._status

    @property
    def node_count(self) -> int:
        if self._config is None:
            raise ConfigurationError("Driver non configurato")
        return self._config.node_count

    @property
    def temperature_field(self) -> np.ndarray:
        """Vista in sola lettura del campo [N+1]"""
        if self._T is None:
            raise ConfigurationError("Campo non allocato: chiamare init_data()")
        view = self._T.view()
        view.flags.writeable = False
        return view

    @property
    def current_time(self) -> float:
        return self._time

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def time_step(self) -> Optional[float]:
        return self._tau

    @property
    def element_size(self) -> Optional[float]:
        return self._h

    @property
    def percent_done(self) -> float:
        """Frazione di avanzamento t / t_end"""
        if self._config is None:
            raise ConfigurationError("Driver non configurato")
        return self._time / self._config.time.end_time


def run_transient_simulation(
    config: Optional[SimulationConfig] = None,
    solver_config: Optional[SolverConfig] = None,
    callback: Optional[StepListener] = None,
    verbose: bool = False
) -> TransientResults:
    """
    Funzione di convenienza per eseguire una simulazione completa.

    Args:
        config: Configurazione (default se None)
        solver_config: Configurazione solutore (opzionale)
        callback: callback(T, percent_done) per ogni passo
        verbose: Stampa la riga finale

    Returns:
        TransientResults
    """
    driver = SimulationDriver(solver_config=solver_config)
    if config is None:
        driver.set_defaults()
    else:
        driver.configure(config)
    driver.init_data()

    if callback is not None:
        driver.add_step_listener(callback)

    return driver.solve(verbose=verbose)
