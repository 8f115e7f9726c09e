"""
main.py - Script principale per la simulazione della barra

Esempio di workflow completo:
1. Carica configurazione (default, file JSON, override da riga di comando)
2. Alloca campo e coefficienti
3. Integra nel tempo con il double sweep
4. Analizza il profilo finale
5. Esporta risultati (CSV / HDF5)
"""

import argparse
import sys
import time

from rod_heat.core.config import SimulationConfig, load_config, parse_option_assignment
from rod_heat.core.errors import RodHeatError
from rod_heat.solver.transient import SimulationDriver, SolverConfig
from rod_heat.analysis.steady_profile import ProfileAnalyzer
from rod_heat.io.state_manager import StateManager


def build_config(args) -> SimulationConfig:
    """Configurazione da file JSON (opzionale) più override NOME=VALORE"""
    config = load_config(args.config) if args.config else SimulationConfig.defaults()

    overrides = dict(parse_option_assignment(item) for item in args.set)
    if overrides:
        config = config.replace(**overrides)
    return config


def run_simulation(args):
    """Esegue una simulazione completa"""

    print("=" * 70)
    print("ROD HEAT CONDUCTION SIMULATION")
    print("=" * 70)

    # =========================================================================
    # 1. CONFIGURAZIONE
    # =========================================================================
    print("\n[1/4] Configurazione...")

    config = build_config(args)
    material = config.material.name or "personalizzato"
    print(f"  Materiale: {material} (alpha = {config.material.diffusivity:.3e} m²/s)")
    print(f"  {config.summary()}")

    # =========================================================================
    # 2. ALLOCAZIONE
    # =========================================================================
    print("\n[2/4] Allocazione...")

    solver_config = SolverConfig(
        method=args.method,
        verbose=args.verbose,
        save_full_field=args.save is not None,
    )
    driver = SimulationDriver(solver_config=solver_config)
    driver.configure(config)
    driver.init_data()
    print(f"  Campo: {driver.node_count + 1} slot, h = {driver.element_size:.4g} m, "
          f"tau = {driver.time_step:.4g} s")

    # =========================================================================
    # 3. SOLUZIONE
    # =========================================================================
    print("\n[3/4] Integrazione nel tempo...")

    t_start = time.time()
    results = driver.solve()
    t_solve = time.time() - t_start
    print(f"  Passi: {driver.step_count}, tempo di calcolo: {t_solve:.3f} s")
    print(f"  {driver.summary()}")

    # =========================================================================
    # 4. ANALISI
    # =========================================================================
    print("\n[4/4] Analisi profilo finale...")

    analysis = ProfileAnalyzer(config).analyze(driver.temperature_field)
    print(f"  T interni: {analysis.T_min:.1f} - {analysis.T_max:.1f} K (media {analysis.T_mean:.1f} K)")
    print(f"  Limiti principio del massimo: [{analysis.lower_bound:.1f}, {analysis.upper_bound:.1f}] K "
          f"{'✓' if analysis.within_bounds else '✗'}")
    print(f"  Scostamento dallo stazionario: {analysis.max_deviation:.2f} K")
    print(f"  Energia accumulata: {analysis.E_stored / 1e3:.1f} kJ/m²")

    # =========================================================================
    # ESPORTAZIONE (opzionale)
    # =========================================================================
    if args.csv:
        results.export_csv(args.csv)

    if args.save:
        StateManager.save_results(results, config, args.save, name="rod_heat")

    print("\n" + "=" * 70)
    return driver, results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="1D transient heat conduction in a rod")
    parser.add_argument("--config", help="File JSON con le opzioni")
    parser.add_argument("--set", action="append", default=[], metavar="NOME=VALORE",
                        help="Sovrascrive un'opzione (es. --set N=50 --set Tl=350)")
    parser.add_argument("--method", choices=("sweep", "direct"), default="sweep",
                        help="Algoritmo del passo implicito")
    parser.add_argument("--csv", help="Esporta lo storico in CSV")
    parser.add_argument("--save", help="Salva risultati in HDF5")
    parser.add_argument("--verbose", action="store_true", help="Output dettagliato del solutore")

    args = parser.parse_args(argv)

    try:
        run_simulation(args)
    except RodHeatError as e:
        print(f"[ERRORE] {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
