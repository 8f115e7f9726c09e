"""
errors.py - Gerarchia delle eccezioni del simulatore
"""


class RodHeatError(Exception):
    """Eccezione base del pacchetto rod_heat"""


class ConfigurationError(RodHeatError, ValueError):
    """
    Parametri di simulazione non validi.

    Sollevata alla costruzione della configurazione o quando il driver
    viene usato fuori sequenza (es. solve() prima di init_data()).
    """


class NumericalInstabilityError(RodHeatError, ArithmeticError):
    """
    Denominatore nullo o non finito durante il double sweep.

    Dopo questo errore il campo di temperatura è in uno stato indeterminato.
    """
