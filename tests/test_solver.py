"""
test_solver.py - Unit tests per i moduli solver

Eseguire con: pytest tests/test_solver.py -v
"""

import math

import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rod_heat.core.config import SimulationConfig, BoundaryConditions
from rod_heat.core.errors import ConfigurationError, NumericalInstabilityError
from rod_heat.solver.tridiagonal import TridiagonalStepper
from rod_heat.solver.matrix_builder import build_implicit_system, solve_implicit_step, residual_norm
from rod_heat.solver.transient import (
    SimulationDriver, SimulationStatus, SolverConfig, run_transient_simulation,
)
from rod_heat.analysis.steady_profile import ProfileAnalyzer, steady_state_profile


def make_driver(config=None, **solver_options):
    driver = SimulationDriver(solver_config=SolverConfig(**solver_options))
    if config is None:
        driver.set_defaults()
    else:
        driver.configure(config)
    driver.init_data()
    return driver


def initial_field(N, T0=300.0, Tl=400.0, Tr=600.0):
    T = np.full(N + 1, T0)
    T[0] = Tl
    T[N] = Tr
    return T


class TestTridiagonalStepper:
    """Test per il double sweep"""

    def test_boundary_slots(self):
        """Dopo il passo T[0] = Tl e T[N] = Tr"""
        N = 10
        bc = BoundaryConditions(left_temperature=400.0, right_temperature=600.0)
        stepper = TridiagonalStepper(N, 2.0, bc)
        T = np.full(N + 1, 300.0)

        stepper.step(T)

        assert T[0] == 400.0
        assert T[N] == 600.0

    def test_in_place(self):
        """Il campo viene modificato in place"""
        N = 8
        stepper = TridiagonalStepper(N, 1.0, BoundaryConditions())
        T = initial_field(N)
        result = stepper.step(T)
        assert result is T

    def test_solves_implicit_system(self):
        """Il risultato soddisfa il sistema implicito (residuo ~0)"""
        N = 20
        lam = 3.7
        bc = BoundaryConditions(left_temperature=350.0, right_temperature=500.0)
        T_old = initial_field(N, T0=300.0, Tl=350.0, Tr=500.0)
        T_old[5:9] = 420.0

        T_new = TridiagonalStepper(N, lam, bc).step(T_old.copy())

        assert residual_norm(T_new, T_old, lam, bc) < 1e-9

    def test_explicit_equation(self):
        """-λT[i-1] + (1+2λ)T[i] - λT[i+1] = T_old[i] per ogni nodo interno"""
        N = 6
        lam = 0.8
        bc = BoundaryConditions(left_temperature=0.0, right_temperature=100.0)
        T_old = np.array([0.0, 10.0, 20.0, 30.0, 40.0, 50.0, 100.0])
        T = TridiagonalStepper(N, lam, bc).step(T_old.copy())

        for i in range(1, N):
            lhs = -lam * T[i - 1] + (1 + 2 * lam) * T[i] - lam * T[i + 1]
            assert lhs == pytest.approx(T_old[i], abs=1e-10)

    def test_matches_sparse_direct(self):
        """Double sweep e scipy spsolve danno lo stesso campo"""
        N = 30
        lam = 10.4
        bc = BoundaryConditions(left_temperature=400.0, right_temperature=600.0)
        T_sweep = initial_field(N)
        T_direct = initial_field(N)

        stepper = TridiagonalStepper(N, lam, bc)
        for _ in range(5):
            stepper.step(T_sweep)
            solve_implicit_step(T_direct, lam, bc)

        np.testing.assert_allclose(T_sweep, T_direct, rtol=1e-12, atol=1e-9)

    def test_zero_lambda_is_identity(self):
        """Con λ = 0 i nodi interni non cambiano"""
        N = 5
        T = initial_field(N)
        TridiagonalStepper(N, 0.0, BoundaryConditions()).step(T)
        np.testing.assert_allclose(T[1:N], 300.0)

    def test_coefficients_read_only(self):
        N = 5
        stepper = TridiagonalStepper(N, 1.0, BoundaryConditions(left_temperature=400.0))
        stepper.step(initial_field(N))

        coeffs = stepper.coefficients
        assert coeffs.P.shape == (N,)
        assert coeffs.Q.shape == (N,)
        assert coeffs.P[0] == 0.0
        assert coeffs.Q[0] == 400.0
        # 0 < P[i] < 1 per λ > 0
        assert np.all((coeffs.P[1:] > 0) & (coeffs.P[1:] < 1))
        with pytest.raises(ValueError):
            coeffs.P[1] = 5.0

    def test_degenerate_denominator(self):
        """λ = -0.5 annulla b_i: errore invece di inf/nan"""
        N = 5
        stepper = TridiagonalStepper(N, -0.5, BoundaryConditions())
        with pytest.raises(NumericalInstabilityError):
            stepper.step(initial_field(N))

    def test_non_finite_lambda(self):
        N = 5
        stepper = TridiagonalStepper(N, float("nan"), BoundaryConditions())
        with pytest.raises(ArithmeticError):
            stepper.step(initial_field(N))

    def test_wrong_field_size(self):
        """Il campo deve avere N+1 elementi"""
        stepper = TridiagonalStepper(10, 1.0, BoundaryConditions())
        with pytest.raises(ValueError):
            stepper.step(np.zeros(10))


class TestMatrixBuilder:
    """Test per il sistema sparso di riferimento"""

    def test_dimensions(self):
        N = 12
        A, b = build_implicit_system(initial_field(N), 2.0, BoundaryConditions())
        assert A.shape == (N - 1, N - 1)
        assert b.shape == (N - 1,)

    def test_structure(self):
        """Tridiagonale, simmetrica, diagonale 1+2λ"""
        lam = 2.5
        A, _ = build_implicit_system(initial_field(8), lam, BoundaryConditions())
        A_dense = A.toarray()

        np.testing.assert_allclose(np.diag(A_dense), 1 + 2 * lam)
        np.testing.assert_allclose(np.diag(A_dense, 1), -lam)
        np.testing.assert_allclose(A_dense, A_dense.T)
        assert A.nnz == 3 * (8 - 1) - 2

    def test_boundary_in_rhs(self):
        """I bordi Dirichlet passano nel termine noto"""
        lam = 2.0
        bc = BoundaryConditions(left_temperature=400.0, right_temperature=600.0)
        _, b = build_implicit_system(initial_field(6), lam, bc)

        assert b[0] == pytest.approx(300.0 + lam * 400.0)
        assert b[-1] == pytest.approx(300.0 + lam * 600.0)
        np.testing.assert_allclose(b[1:-1], 300.0)

    def test_direct_sets_boundaries(self):
        N = 4
        bc = BoundaryConditions(left_temperature=10.0, right_temperature=20.0)
        T = np.zeros(N + 1)
        solve_implicit_step(T, 1.0, bc)
        assert T[0] == 10.0
        assert T[N] == 20.0

    def test_too_short(self):
        with pytest.raises(ValueError):
            build_implicit_system(np.zeros(3), 1.0, BoundaryConditions())


class TestSimulationDriver:
    """Test per il ciclo temporale"""

    def test_lifecycle(self):
        """UNINITIALIZED -> CONFIGURED -> ALLOCATED -> DONE"""
        driver = SimulationDriver()
        assert driver.status == SimulationStatus.UNINITIALIZED

        driver.set_defaults()
        assert driver.status == SimulationStatus.CONFIGURED

        driver.init_data()
        assert driver.status == SimulationStatus.ALLOCATED
        assert driver.temperature_field.shape == (31,)
        assert np.all(driver.temperature_field == 0.0)

        states = []
        driver.add_step_listener(lambda T, p: states.append(driver.status))
        driver.solve()

        assert driver.status == SimulationStatus.DONE
        assert set(states) == {SimulationStatus.RUNNING}

    def test_init_before_config(self):
        with pytest.raises(ConfigurationError):
            SimulationDriver().init_data()

    def test_solve_before_init(self):
        driver = SimulationDriver()
        driver.set_defaults()
        with pytest.raises(ConfigurationError):
            driver.solve()

    def test_reconfigure_mesh_requires_init(self):
        """Cambiare N riporta a CONFIGURED"""
        driver = make_driver()
        driver.configure(N=40)
        assert driver.status == SimulationStatus.CONFIGURED
        with pytest.raises(ConfigurationError):
            driver.solve()

        driver.init_data()
        driver.solve()
        assert driver.temperature_field.shape == (41,)

    def test_reconfigure_temperatures_keeps_allocation(self):
        """Tl, Tr, T0 cambiano senza riallocare"""
        driver = make_driver()
        driver.solve()
        driver.configure(Tl=350.0, Tr=450.0, T0=400.0)
        assert driver.status == SimulationStatus.DONE

        driver.solve()
        T = driver.temperature_field
        assert T[0] == 350.0
        assert T[driver.node_count] == 450.0

    def test_boundary_fidelity_every_step(self):
        """T[0] = Tl e T[N] = Tr esattamente dopo ogni passo"""
        driver = make_driver()
        N = driver.node_count
        seen = []

        def check(T, percent):
            seen.append((T[0], T[N]))

        driver.add_step_listener(check)
        driver.solve()

        assert len(seen) == N - 1
        assert all(left == 400.0 and right == 600.0 for left, right in seen)

    @pytest.mark.parametrize("N", [3, 4, 7, 30, 101])
    def test_step_count(self, N):
        """Esattamente N-1 passi"""
        driver = make_driver(SimulationConfig.defaults().replace(N=N))
        times = []
        driver.add_step_listener(lambda T, p: times.append(driver.current_time))
        driver.solve()

        assert driver.step_count == N - 1
        assert len(times) == N - 1
        assert driver.current_time == pytest.approx(30.0)

    def test_monotone_time(self):
        """Il tempo cresce di tau ad ogni passo"""
        config = SimulationConfig.defaults().replace(t_start=5.0, t_end=35.0, N=16)
        driver = make_driver(config)
        times = []
        driver.add_step_listener(lambda T, p: times.append(driver.current_time))
        driver.solve()

        tau = config.time_step
        assert tau == pytest.approx(2.0)
        steps = np.diff([5.0] + times)
        np.testing.assert_allclose(steps, tau)
        assert np.all(steps > 0)

    def test_progress_fraction(self):
        """percent_done = t / t_end, ultimo valore 1"""
        driver = make_driver()
        progress = []
        driver.add_step_listener(lambda T, p: progress.append(p))
        driver.solve()

        assert all(0.0 < p <= 1.0 + 1e-12 for p in progress)
        assert progress == sorted(progress)
        assert progress[-1] == pytest.approx(1.0)
        assert driver.percent_done == pytest.approx(1.0)
        assert progress[0] == pytest.approx((30 / 29) / 30)

    def test_listeners_get_snapshots(self):
        """Le callback ricevono copie: modificarle non tocca il solutore"""
        driver = make_driver()
        received = []

        def vandal(T, percent):
            received.append(T)
            T[:] = -1.0

        driver.add_step_listener(vandal)
        driver.solve()

        assert driver.temperature_field[0] == 400.0
        assert np.all(driver.temperature_field[1:-1] > 0)
        # Snapshot distinti per ogni passo
        assert len({id(T) for T in received}) == len(received)

    def test_listener_order_and_removal(self):
        driver = make_driver(SimulationConfig.defaults().replace(N=4))
        calls = []
        first = lambda T, p: calls.append("first")
        second = lambda T, p: calls.append("second")

        driver.add_step_listener(first)
        driver.add_step_listener(second)
        driver.solve()
        assert calls == ["first", "second"] * 3

        calls.clear()
        driver.remove_step_listener(first)
        driver.solve()
        assert calls == ["second"] * 3

        with pytest.raises(ValueError):
            driver.remove_step_listener(first)

    def test_listener_errors_propagate(self):
        """Le eccezioni delle callback escono da solve()"""
        driver = make_driver()

        def failing(T, percent):
            raise RuntimeError("renderer rotto")

        driver.add_step_listener(failing)
        with pytest.raises(RuntimeError, match="renderer rotto"):
            driver.solve()

    def test_temperature_field_read_only(self):
        driver = make_driver()
        driver.solve()
        with pytest.raises(ValueError):
            driver.temperature_field[3] = 0.0

    def test_solve_restarts_from_initial(self):
        """Due solve() consecutivi danno lo stesso campo"""
        driver = make_driver()
        driver.solve()
        first = np.array(driver.temperature_field)
        driver.solve()
        np.testing.assert_array_equal(first, driver.temperature_field)

    def test_determinism(self):
        """Stessa configurazione, stessa traiettoria bit per bit"""
        trajectories = []
        for _ in range(2):
            driver = make_driver()
            steps = []
            driver.add_step_listener(lambda T, p: steps.append(T))
            driver.solve()
            trajectories.append(np.vstack(steps))

        np.testing.assert_array_equal(trajectories[0], trajectories[1])

    def test_direct_method_matches_sweep(self):
        sweep = make_driver()
        direct = make_driver(method="direct")
        sweep.solve()
        direct.solve()

        np.testing.assert_allclose(sweep.temperature_field, direct.temperature_field, rtol=1e-10, atol=1e-8)

    def test_invalid_solver_config(self):
        with pytest.raises(ConfigurationError):
            SolverConfig(method="jacobi")
        with pytest.raises(ConfigurationError):
            SolverConfig(save_interval=0)


class TestPhysicalProperties:
    """Proprietà fisiche della soluzione"""

    def test_reference_scenario(self, capsys):
        """Rame, N=30, 0-30 s: bordi esatti, interni in [300, 600], riga finale t=30.0 s"""
        driver = make_driver()
        driver.solve(verbose=True)

        T = driver.temperature_field
        N = driver.node_count
        assert T[0] == 400.0
        assert T[N] == 600.0
        assert np.all(T[1:N] >= 300.0)
        assert np.all(T[1:N] <= 600.0)

        out = capsys.readouterr().out.strip().splitlines()
        assert out[-1].startswith("t=30.0 s")
        assert f"T0={T[0]:.1f} K" in out[-1]
        assert f"T={T[N - 1]:.1f} K" in out[-1]

    def test_silent_by_default(self, capsys):
        make_driver().solve()
        assert capsys.readouterr().out == ""

    def test_verbose_argument_overrides_solver_config(self, capsys):
        """solve(verbose=False) zittisce anche le righe [TRANSIENT]"""
        driver = make_driver(verbose=True)
        capsys.readouterr()

        driver.solve(verbose=False)
        assert capsys.readouterr().out == ""

        driver.solve()
        out = capsys.readouterr().out
        assert "[TRANSIENT]" in out
        assert out.strip().splitlines()[-1].startswith("t=30.0 s")

    def test_verbose_argument_without_solver_config(self, capsys):
        driver = make_driver()
        driver.solve(verbose=True)
        assert "[TRANSIENT]" in capsys.readouterr().out

    @pytest.mark.parametrize("Tl,T0,Tr", [
        (400.0, 300.0, 600.0),
        (600.0, 300.0, 400.0),
        (250.0, 500.0, 300.0),
        (300.0, 350.0, 400.0),
    ])
    def test_maximum_principle(self, Tl, T0, Tr):
        """I nodi interni restano in [min(Tl,T0,Tr), max(Tl,T0,Tr)] ad ogni passo"""
        config = SimulationConfig.defaults().replace(Tl=Tl, T0=T0, Tr=Tr)
        driver = make_driver(config)
        analyzer = ProfileAnalyzer(config)
        checks = []
        driver.add_step_listener(lambda T, p: checks.append(analyzer.analyze(T).within_bounds))
        driver.solve()

        assert checks and all(checks)

    def test_steady_state_convergence(self):
        """Con orizzonte lungo il campo tende al profilo lineare"""
        config = SimulationConfig.defaults().replace(t_end=3000.0)
        driver = make_driver(config)
        driver.solve()

        steady = steady_state_profile(config)
        np.testing.assert_allclose(driver.temperature_field, steady, atol=1e-3)

    def test_approaches_steady_state_monotonically(self):
        """Lo scostamento dallo stazionario non cresce nel tempo"""
        config = SimulationConfig.defaults().replace(t_end=300.0)
        driver = make_driver(config)
        analyzer = ProfileAnalyzer(config)
        deviations = []
        driver.add_step_listener(lambda T, p: deviations.append(analyzer.deviation_from_steady_state(T)))
        driver.solve()

        assert all(b <= a + 1e-9 for a, b in zip(deviations, deviations[1:]))

    def test_uniform_state_is_fixed_point(self):
        """Tl = T0 = Tr: il campo non cambia"""
        config = SimulationConfig.defaults().replace(Tl=350.0, T0=350.0, Tr=350.0)
        driver = make_driver(config)
        driver.solve()
        np.testing.assert_allclose(driver.temperature_field, 350.0, rtol=0, atol=1e-9)

    def test_minimum_mesh(self):
        """N = 3 arriva in fondo senza denominatori degeneri"""
        config = SimulationConfig.defaults().replace(N=3)
        driver = make_driver(config)
        driver.solve()

        T = driver.temperature_field
        assert T.shape == (4,)
        assert np.all(np.isfinite(T))
        assert driver.step_count == 2
        assert 300.0 <= T[1] <= 600.0
        assert 300.0 <= T[2] <= 600.0

    def test_last_interior_node_couples_to_right_slot(self):
        """Il nodo N-1 è interno: non coincide con il bordo destro"""
        driver = make_driver()
        driver.solve()
        N = driver.node_count
        T = driver.temperature_field
        assert T[N - 1] < T[N]
        assert T[N - 1] > T[N - 2]


class TestRunTransientSimulation:
    """Funzione di convenienza"""

    def test_results_history(self):
        results = run_transient_simulation()

        # Stato iniziale + 29 passi
        assert results.n_saves == 30
        assert results.times[0] == 0.0
        assert results.times[-1] == pytest.approx(30.0)
        np.testing.assert_array_equal(results.T_left, 400.0)
        np.testing.assert_array_equal(results.T_right, 600.0)
        assert results.T_min[0] == 300.0
        assert results.percent_done[-1] == pytest.approx(1.0)
        assert results.T_fields == []

    def test_full_fields_and_interval(self):
        results = run_transient_simulation(
            SimulationConfig.defaults().replace(N=11),
            SolverConfig(save_full_field=True, save_interval=3),
        )
        # Iniziale + passi 3, 6, 9 + ultimo (10)
        assert results.n_saves == 5
        assert len(results.T_fields) == 5
        assert results.final_field.shape == (12,)

    def test_callback(self):
        progress = []
        run_transient_simulation(callback=lambda T, p: progress.append(p))
        assert len(progress) == 29
        assert not math.isnan(progress[-1])


# =============================================================================
# ESECUZIONE
# =============================================================================
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
