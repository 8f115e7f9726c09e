"""
state_manager.py - Storico dei risultati transitori e salvataggio su file

=============================================================================
STATE MANAGEMENT
=============================================================================

Questo modulo gestisce:
- Raccolta dei risultati di ogni passo temporale (TransientResults)
- Esportazione CSV dello storico
- Salvataggio e caricamento su HDF5 con verifica di compatibilità

FORMATO FILE: HDF5
Struttura:
    /metadata
        version, timestamp, name, config_hash, config_json
    /results
        times, percent_done, T_min, T_max, T_mean, T_left, T_right
        T_fields (opzionale, [n_saves, N+1])

=============================================================================
"""

import csv
import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

# h5py è opzionale
try:
    import h5py
    HAS_H5PY = True
except ImportError:
    HAS_H5PY = False
    h5py = None


# Serie scalari registrate ad ogni salvataggio
SERIES_KEYS = ('percent_done', 'T_min', 'T_max', 'T_mean', 'T_left', 'T_right')


@dataclass
class TransientResults:
    """
    Contenitore per risultati simulazione transitoria.

    Ogni serie è un array con un valore per ogni timestep salvato.
    """
    times: np.ndarray = field(default_factory=lambda: np.array([]))
    percent_done: np.ndarray = field(default_factory=lambda: np.array([]))

    # Temperature [K]
    T_min: np.ndarray = field(default_factory=lambda: np.array([]))    # min nodi interni
    T_max: np.ndarray = field(default_factory=lambda: np.array([]))    # max nodi interni
    T_mean: np.ndarray = field(default_factory=lambda: np.array([]))   # media nodi interni
    T_left: np.ndarray = field(default_factory=lambda: np.array([]))   # T[0]
    T_right: np.ndarray = field(default_factory=lambda: np.array([]))  # T[N]

    # Campi completi (opzionale)
    T_fields: List[np.ndarray] = field(default_factory=list)

    def add_timestep(self, t: float, data: Dict[str, float], T_field: Optional[np.ndarray] = None):
        """
        Aggiunge i dati di un timestep.

        Args:
            t: Tempo corrente [s]
            data: Dict con i valori delle serie (chiavi di SERIES_KEYS)
            T_field: Campo temperatura completo (opzionale)
        """
        self.times = np.append(self.times, t)

        for key in SERIES_KEYS:
            value = data.get(key, np.nan)
            setattr(self, key, np.append(getattr(self, key), value))

        if T_field is not None:
            self.T_fields.append(np.array(T_field, copy=True))

    def record_field(self, t: float, percent: float, T: np.ndarray, save_field: bool = False):
        """Registra statistiche (ed eventualmente il campo) di un campo [N+1]"""
        interior = T[1:-1]
        data = {
            'percent_done': percent,
            'T_min': float(np.min(interior)),
            'T_max': float(np.max(interior)),
            'T_mean': float(np.mean(interior)),
            'T_left': float(T[0]),
            'T_right': float(T[-1]),
        }
        self.add_timestep(t, data, T if save_field else None)

    @property
    def n_saves(self) -> int:
        return len(self.times)

    @property
    def final_field(self) -> Optional[np.ndarray]:
        """Ultimo campo salvato, se disponibile"""
        return self.T_fields[-1] if self.T_fields else None

    def fields_array(self) -> np.ndarray:
        """Campi salvati come array [n_saves, N+1]"""
        if not self.T_fields:
            return np.empty((0, 0))
        return np.vstack(self.T_fields)

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Converte in dizionario per salvataggio"""
        data = {'times': self.times}
        for key in SERIES_KEYS:
            data[key] = getattr(self, key)
        return data

    def export_csv(self, filepath: Union[str, Path]):
        """Esporta le serie in formato CSV"""
        filepath = Path(filepath)

        header = ['time_s'] + list(SERIES_KEYS)
        columns = [self.times] + [getattr(self, key) for key in SERIES_KEYS]

        with open(filepath, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(header)
            for i in range(self.n_saves):
                writer.writerow([float(col[i]) for col in columns])

        print(f"[EXPORT] CSV salvato: {filepath}")


class StateManager:
    """
    Manager per salvataggio e caricamento dei risultati.

    Usa formato HDF5; la configurazione viene salvata come JSON con un hash
    per verificare la compatibilità al caricamento.
    """

    FILE_EXTENSION = ".h5"
    CURRENT_VERSION = "1.0"

    @staticmethod
    def compute_config_hash(config) -> str:
        """
        Hash della configurazione (SHA256 troncato).

        Args:
            config: SimulationConfig

        Returns:
            Stringa esadecimale di 16 caratteri
        """
        payload = json.dumps(config.to_dict(), sort_keys=True).encode()
        return hashlib.sha256(payload).hexdigest()[:16]

    @staticmethod
    def save_results(
        results: TransientResults,
        config,
        filepath: Union[str, Path],
        name: str = "Untitled"
    ) -> bool:
        """
        Salva risultati e configurazione su file HDF5.

        Args:
            results: TransientResults da salvare
            config: SimulationConfig usata per la simulazione
            filepath: Percorso file (estensione .h5 aggiunta se mancante)
            name: Nome della simulazione

        Returns:
            True se salvato con successo
        """
        if not HAS_H5PY:
            print("[ERRORE] h5py non installato. Esegui: pip install h5py")
            return False

        filepath = Path(filepath)
        if filepath.suffix != StateManager.FILE_EXTENSION:
            filepath = filepath.with_suffix(StateManager.FILE_EXTENSION)

        try:
            with h5py.File(filepath, 'w') as f:
                # === METADATA ===
                meta = f.create_group('metadata')
                meta.attrs['version'] = StateManager.CURRENT_VERSION
                meta.attrs['timestamp'] = datetime.now().isoformat()
                meta.attrs['name'] = name
                meta.attrs['config_hash'] = StateManager.compute_config_hash(config)
                meta.attrs['config_json'] = json.dumps(config.to_dict())

                # === RESULTS ===
                grp = f.create_group('results')
                for key, value in results.to_dict().items():
                    grp.create_dataset(key, data=np.asarray(value, dtype=np.float64))

                if results.T_fields:
                    grp.create_dataset(
                        'T_fields', data=results.fields_array(),
                        compression='gzip', compression_opts=4
                    )

            print(f"[SAVE] Risultati salvati: {filepath}")
            return True

        except OSError as e:
            print(f"[ERRORE] Salvataggio risultati: {e}")
            return False

    @staticmethod
    def load_results(filepath: Union[str, Path]) -> Optional[Tuple[TransientResults, Dict[str, Any]]]:
        """
        Carica risultati da file HDF5.

        Args:
            filepath: Percorso file

        Returns:
            (TransientResults, metadata) o None se errore.
            metadata contiene 'name', 'timestamp', 'config_hash' e 'config'
            (dict delle opzioni).
        """
        if not HAS_H5PY:
            print("[ERRORE] h5py non installato. Esegui: pip install h5py")
            return None

        filepath = Path(filepath)

        if not filepath.exists():
            print(f"[ERRORE] File non trovato: {filepath}")
            return None

        try:
            with h5py.File(filepath, 'r') as f:
                meta = f['metadata']
                metadata = {
                    'version': _as_str(meta.attrs['version']),
                    'name': _as_str(meta.attrs['name']),
                    'timestamp': _as_str(meta.attrs['timestamp']),
                    'config_hash': _as_str(meta.attrs['config_hash']),
                    'config': json.loads(_as_str(meta.attrs['config_json'])),
                }

                grp = f['results']
                results = TransientResults(times=grp['times'][:])
                for key in SERIES_KEYS:
                    if key in grp:
                        setattr(results, key, grp[key][:])
                if 'T_fields' in grp:
                    results.T_fields = [row.copy() for row in grp['T_fields'][:]]

            print(f"[LOAD] Risultati caricati: {filepath}")
            return results, metadata

        except (OSError, KeyError) as e:
            print(f"[ERRORE] Caricamento risultati: {e}")
            return None

    @staticmethod
    def verify_compatibility(saved_hash: str, config) -> Tuple[bool, str]:
        """
        Verifica se dei risultati salvati corrispondono alla configurazione.

        Returns:
            (compatibile: bool, messaggio: str)
        """
        current_hash = StateManager.compute_config_hash(config)
        if saved_hash != current_hash:
            return False, (
                f"Configurazione modificata dall'ultimo salvataggio.\n"
                f"Hash salvato: {saved_hash}\n"
                f"Hash corrente: {current_hash}"
            )
        return True, "Risultati compatibili con la configurazione corrente."


def _as_str(value) -> str:
    """Gli attributi stringa HDF5 possono tornare come bytes"""
    if isinstance(value, bytes):
        return value.decode()
    return str(value)
