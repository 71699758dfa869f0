import logging
import os
from pathlib import Path
from typing import Optional

# Directorio por defecto de los Excel de trabajo (se puede sobreescribir por entorno)
DEFAULT_DATA_DIR = "data"

POLIZAS_FILE = "listado_polizas.xlsx"
ASESORES_FILE = "lista_asesores.xlsx"
ENTES_FILE = "entes.xlsx"
LINKS_FILE = "entes_registrados_asesor.xlsx"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_data_dir() -> Path:
    """
    Devuelve el directorio de datos.
    Se evalúa en cada llamada para que los tests puedan cambiar la variable de entorno.
    """
    return Path(os.environ.get("METRICAS_DATA_DIR", DEFAULT_DATA_DIR))


def get_file_path(filename: str) -> Path:
    return get_data_dir() / filename


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configura el logging raíz con un único handler a stderr.
    El nivel se toma de METRICAS_LOG_LEVEL si no se indica.
    """
    level_name = (level or os.environ.get("METRICAS_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
