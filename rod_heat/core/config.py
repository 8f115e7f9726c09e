"""
config.py - Configurazione tipizzata e validata della simulazione

=============================================================================
CONFIGURAZIONE
=============================================================================

Tutti i parametri fisici e numerici sono raccolti in dataclass immutabili:

    MeshConfig          lunghezza L, numero di nodi N      -> h = L/(N-1)
    MaterialProperties  k, rho, c                          -> alpha = k/(rho·c)
    TimeConfig          t_start, t_end                     -> tau = (t_end-t_start)/(N-1)
    BoundaryConditions  Tl, Tr (Dirichlet, costanti)
    SimulationConfig    aggregato + temperatura iniziale T0

NOTA: il passo temporale è legato alla risoluzione spaziale (tau dipende da N).
È una scelta del modello, non un errore: cambiare N cambia anche tau.

La validazione avviene alla costruzione (__post_init__): ogni parametro non
valido solleva ConfigurationError, prima di allocare qualsiasi array.
=============================================================================
"""

import json
import math
import numbers
from dataclasses import dataclass, field, replace as dc_replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .errors import ConfigurationError
from .materials import DEFAULT_MATERIAL, MATERIALS, MaterialManager, MaterialProperties


def _check_finite(name: str, value: Any) -> float:
    """Accetta qualunque reale finito (anche scalari numpy), restituisce float"""
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise ConfigurationError(f"{name} deve essere un numero finito, ricevuto {value!r}")
    return float(value)


@dataclass(frozen=True)
class MeshConfig:
    """Mesh 1D uniforme della barra"""
    length: float = 0.1          # Lunghezza barra [m]
    node_count: int = 30         # Risoluzione spaziale N (>= 3)

    def __post_init__(self):
        object.__setattr__(self, "length", _check_finite("length", self.length))
        if self.length <= 0:
            raise ConfigurationError(f"length deve essere positiva, ricevuto {self.length!r}")
        if isinstance(self.node_count, bool) or not isinstance(self.node_count, numbers.Integral):
            raise ConfigurationError(f"node_count deve essere intero, ricevuto {self.node_count!r}")
        # np.int64 & co. -> int, serializzabile in JSON
        object.__setattr__(self, "node_count", int(self.node_count))
        if self.node_count < 3:
            raise ConfigurationError(
                f"node_count deve essere >= 3 (almeno un nodo interno), ricevuto {self.node_count}"
            )

    @property
    def element_size(self) -> float:
        """Dimensione elemento h [m]"""
        return self.length / (self.node_count - 1)


@dataclass(frozen=True)
class TimeConfig:
    """Finestra temporale della simulazione"""
    start_time: float = 0.0      # Tempo iniziale [s]
    end_time: float = 30.0       # Tempo finale [s]

    def __post_init__(self):
        object.__setattr__(self, "start_time", _check_finite("start_time", self.start_time))
        object.__setattr__(self, "end_time", _check_finite("end_time", self.end_time))
        if self.start_time < 0:
            raise ConfigurationError(f"start_time non può essere negativo, ricevuto {self.start_time!r}")
        if self.end_time <= self.start_time:
            raise ConfigurationError(
                f"end_time ({self.end_time}) deve essere maggiore di start_time ({self.start_time})"
            )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def time_step(self, node_count: int) -> float:
        """Passo temporale tau [s], legato alla risoluzione spaziale"""
        return self.duration / (node_count - 1)


@dataclass(frozen=True)
class BoundaryConditions:
    """Temperature imposte agli estremi (Dirichlet) [K]"""
    left_temperature: float = 400.0
    right_temperature: float = 600.0

    def __post_init__(self):
        for attr in ("left_temperature", "right_temperature"):
            object.__setattr__(self, attr, _check_finite(attr, getattr(self, attr)))


# Nomi canonici delle opzioni -> (sezione, attributo)
_OPTION_TARGETS = {
    "length": ("mesh", "length"),
    "node_count": ("mesh", "node_count"),
    "conductivity": ("material", "conductivity"),
    "density": ("material", "density"),
    "specific_heat": ("material", "specific_heat"),
    "start_time": ("time", "start_time"),
    "end_time": ("time", "end_time"),
    "left_temperature": ("boundary", "left_temperature"),
    "right_temperature": ("boundary", "right_temperature"),
    "initial_temperature": (None, "initial_temperature"),
}

# Alias brevi (notazione delle formule)
OPTION_ALIASES = {
    "L": "length",
    "N": "node_count",
    "k": "conductivity",
    "rho": "density",
    "c": "specific_heat",
    "t_start": "start_time",
    "t_end": "end_time",
    "Tl": "left_temperature",
    "Tr": "right_temperature",
    "T0": "initial_temperature",
}

RECOGNIZED_OPTIONS = tuple(_OPTION_TARGETS) + ("material",)


def _canonical_name(name: str) -> str:
    name = OPTION_ALIASES.get(name, name)
    if name not in RECOGNIZED_OPTIONS:
        raise ConfigurationError(
            f"Opzione sconosciuta: {name!r}. Opzioni valide: {', '.join(RECOGNIZED_OPTIONS)}"
        )
    return name


@dataclass(frozen=True)
class SimulationConfig:
    """
    Configurazione completa e immutabile di una simulazione.

    Attributes:
        mesh: MeshConfig (L, N)
        material: MaterialProperties (k, rho, c)
        time: TimeConfig (t_start, t_end)
        boundary: BoundaryConditions (Tl, Tr)
        initial_temperature: T0 dei nodi interni [K]
    """
    mesh: MeshConfig = field(default_factory=MeshConfig)
    material: MaterialProperties = field(default_factory=lambda: MATERIALS[DEFAULT_MATERIAL])
    time: TimeConfig = field(default_factory=TimeConfig)
    boundary: BoundaryConditions = field(default_factory=BoundaryConditions)
    initial_temperature: float = 300.0

    def __post_init__(self):
        object.__setattr__(self, "initial_temperature",
                           _check_finite("initial_temperature", self.initial_temperature))

    # -------------------------------------------------------------------------
    # Costruzione
    # -------------------------------------------------------------------------

    @classmethod
    def defaults(cls) -> "SimulationConfig":
        """Scenario di default: barra di rame da 10 cm, 300 K, estremi a 400/600 K"""
        return cls()

    @classmethod
    def from_dict(
        cls,
        options: Mapping[str, Any],
        base: Optional["SimulationConfig"] = None
    ) -> "SimulationConfig":
        """
        Crea una configurazione sovrascrivendo un sottoinsieme di opzioni.

        Args:
            options: Dict {nome_opzione: valore}. Accetta i nomi canonici
                (es. "node_count") e gli alias brevi (es. "N").
                "material" seleziona un materiale dal database; eventuali
                k/rho/c espliciti hanno la precedenza.
            base: Configurazione di partenza (default se None)

        Returns:
            Nuova SimulationConfig validata
        """
        base = base if base is not None else cls.defaults()

        canonical: Dict[str, Any] = {}
        for name, value in options.items():
            key = _canonical_name(name)
            if key in canonical:
                raise ConfigurationError(f"Opzione {key!r} specificata due volte")
            canonical[key] = value

        sections: Dict[str, Dict[str, Any]] = {"mesh": {}, "material": {}, "time": {}, "boundary": {}}
        top_level: Dict[str, Any] = {}

        material = base.material
        if "material" in canonical:
            try:
                material = MaterialManager().get(str(canonical.pop("material")))
            except KeyError as e:
                raise ConfigurationError(str(e.args[0])) from e

        for key, value in canonical.items():
            section, attr = _OPTION_TARGETS[key]
            if section is None:
                top_level[attr] = value
            else:
                sections[section][attr] = value

        # Proprietà modificate a mano: il nome del materiale non è più valido
        new_material = dc_replace(material, **sections["material"])
        if new_material != material:
            new_material = dc_replace(new_material, name="")

        if "node_count" in sections["mesh"]:
            sections["mesh"]["node_count"] = _as_node_count(sections["mesh"]["node_count"])

        return dc_replace(
            base,
            mesh=dc_replace(base.mesh, **sections["mesh"]),
            material=new_material,
            time=dc_replace(base.time, **sections["time"]),
            boundary=dc_replace(base.boundary, **sections["boundary"]),
            **top_level,
        )

    def replace(self, **options) -> "SimulationConfig":
        """Copia con opzioni sovrascritte (stessi nomi di from_dict)"""
        return SimulationConfig.from_dict(options, base=self)

    def to_dict(self) -> Dict[str, Any]:
        """
        Dizionario piatto con i nomi canonici delle opzioni.

        Se il materiale coincide con una voce del database viene aggiunta
        anche la chiave "material", così che from_dict(to_dict()) ricostruisca
        la stessa configurazione (nome compreso).
        """
        result: Dict[str, Any] = {}
        for key, (section, attr) in _OPTION_TARGETS.items():
            owner = self if section is None else getattr(self, section)
            result[key] = getattr(owner, attr)
        material_key = _database_key(self.material)
        if material_key is not None:
            result["material"] = material_key
        return result

    # -------------------------------------------------------------------------
    # Grandezze derivate
    # -------------------------------------------------------------------------

    @property
    def node_count(self) -> int:
        return self.mesh.node_count

    @property
    def element_size(self) -> float:
        """h = L / (N-1) [m]"""
        return self.mesh.element_size

    @property
    def time_step(self) -> float:
        """tau = (t_end - t_start) / (N-1) [s]"""
        return self.time.time_step(self.mesh.node_count)

    @property
    def diffusion_number(self) -> float:
        """lambda = alpha·tau/h² (adimensionale)"""
        h = self.element_size
        return self.material.diffusivity * self.time_step / (h * h)

    @property
    def temperature_bounds(self) -> tuple:
        """(min, max) di Tl, T0, Tr: limiti del principio del massimo"""
        values = (self.boundary.left_temperature, self.initial_temperature,
                  self.boundary.right_temperature)
        return min(values), max(values)

    def summary(self) -> str:
        """Riga descrittiva per output verbose"""
        return (
            f"L={self.mesh.length:g} m, N={self.node_count}, h={self.element_size:.4g} m, "
            f"tau={self.time_step:.4g} s, lambda={self.diffusion_number:.4g}, "
            f"T0={self.initial_temperature:g} K, Tl={self.boundary.left_temperature:g} K, "
            f"Tr={self.boundary.right_temperature:g} K"
        )


def _database_key(material: MaterialProperties) -> Optional[str]:
    """Chiave del database per un materiale identico a una voce di MATERIALS"""
    for key, props in MATERIALS.items():
        if props == material:
            return key
    return None


def _as_node_count(value: Any) -> int:
    """Accetta interi e float interi (es. 30.0 letto da JSON/CLI)"""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def load_config(
    path: Union[str, Path],
    base: Optional[SimulationConfig] = None
) -> SimulationConfig:
    """
    Carica una configurazione da file JSON.

    Il file contiene un oggetto con un sottoinsieme delle opzioni
    riconosciute, es. {"N": 50, "Tl": 350.0, "material": "aluminium"}.

    Args:
        path: Percorso file JSON
        base: Configurazione di partenza (default se None)

    Returns:
        SimulationConfig validata
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            options = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Impossibile leggere {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"JSON non valido in {path}: {e}") from e

    if not isinstance(options, dict):
        raise ConfigurationError(f"{path}: atteso un oggetto JSON, trovato {type(options).__name__}")

    return SimulationConfig.from_dict(options, base=base)


def parse_option_assignment(text: str) -> tuple:
    """
    Interpreta un'assegnazione "NOME=VALORE" da riga di comando.

    Returns:
        (nome, valore) con valore convertito a int/float quando possibile
    """
    if "=" not in text:
        raise ConfigurationError(f"Atteso NOME=VALORE, ricevuto {text!r}")
    name, raw = (part.strip() for part in text.split("=", 1))
    try:
        value: Any = int(raw)
    except ValueError:
        try:
            value = float(raw)
        except ValueError:
            value = raw
    return name, value


__all__ = [
    "MeshConfig",
    "MaterialProperties",
    "TimeConfig",
    "BoundaryConditions",
    "SimulationConfig",
    "OPTION_ALIASES",
    "RECOGNIZED_OPTIONS",
    "load_config",
    "parse_option_assignment",
]
