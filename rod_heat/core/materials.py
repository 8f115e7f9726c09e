"""
materials.py - Database materiali per la barra

Fornisce:
- Proprietà termiche costanti dei materiali più comuni per barre metalliche
- Calcolo della diffusività termica
"""

import math
import numbers
from dataclasses import dataclass
from typing import Dict, List

from .errors import ConfigurationError


@dataclass(frozen=True)
class MaterialProperties:
    """
    Proprietà termiche di un materiale (costanti nel tempo e nello spazio).
    """
    conductivity: float          # Conducibilità termica k [W/(m·K)]
    density: float               # Densità rho [kg/m³]
    specific_heat: float         # Calore specifico c [J/(kg·K)]
    name: str = ""

    def __post_init__(self):
        for attr in ("conductivity", "density", "specific_heat"):
            value = getattr(self, attr)
            if (isinstance(value, bool) or not isinstance(value, numbers.Real)
                    or not math.isfinite(value) or value <= 0):
                raise ConfigurationError(f"{attr} deve essere positivo e finito, ricevuto {value!r}")
            object.__setattr__(self, attr, float(value))

    @property
    def diffusivity(self) -> float:
        """Diffusività termica [m²/s]"""
        return self.conductivity / (self.density * self.specific_heat)

    @property
    def volumetric_heat_capacity(self) -> float:
        """Capacità termica volumetrica [J/(m³·K)]"""
        return self.density * self.specific_heat


# =============================================================================
# DATABASE MATERIALI
# =============================================================================

MATERIALS: Dict[str, MaterialProperties] = {
    "copper": MaterialProperties(
        name="Rame",
        conductivity=410.0,
        density=8920.0,
        specific_heat=385.0,
    ),
    "aluminium": MaterialProperties(
        name="Alluminio",
        conductivity=237.0,
        density=2700.0,
        specific_heat=897.0,
    ),
    "brass": MaterialProperties(
        name="Ottone",
        conductivity=109.0,
        density=8530.0,
        specific_heat=380.0,
    ),
    "carbon_steel": MaterialProperties(
        name="Acciaio al Carbonio",
        conductivity=50.0,
        density=7850.0,
        specific_heat=490.0,
    ),
    "stainless_steel": MaterialProperties(
        name="Acciaio Inossidabile 304",
        conductivity=16.2,
        density=8000.0,
        specific_heat=500.0,
    ),
    "glass": MaterialProperties(
        name="Vetro",
        conductivity=1.05,
        density=2500.0,
        specific_heat=840.0,
    ),
}

DEFAULT_MATERIAL = "copper"


class MaterialManager:
    """
    Accesso al database materiali.

    Permette di aggiungere materiali personalizzati senza toccare MATERIALS.
    """

    def __init__(self):
        self._materials: Dict[str, MaterialProperties] = dict(MATERIALS)

    def get(self, name: str) -> MaterialProperties:
        """Restituisce le proprietà del materiale (KeyError se sconosciuto)"""
        key = name.lower()
        if key not in self._materials:
            raise KeyError(f"Materiale sconosciuto: {name}")
        return self._materials[key]

    def add(self, key: str, props: MaterialProperties):
        """Registra un materiale personalizzato"""
        self._materials[key.lower()] = props

    def list_materials(self) -> List[str]:
        """Lista delle chiavi disponibili, ordinate"""
        return sorted(self._materials)
