"""
Almacenamiento sobre archivos Excel en el directorio de datos.

Las lecturas se cachean en memoria por fecha de modificación del archivo:
mientras el archivo no cambie se devuelve la copia cacheada.
Las escrituras reintentan si el archivo está bloqueado (abierto en Excel).
"""

import io
import logging
import time
from typing import Any, Dict, List, Tuple

import pandas as pd

from config import get_file_path
from data_loader import read_sheet, rows_from_frame
from utils import Row

logger = logging.getLogger(__name__)

SHEET_NAME = "Hoja1"
MAX_WRITE_RETRIES = 3
RETRY_DELAY_SECONDS = 0.5

# filename -> (mtime, filas)
_cache: Dict[str, Tuple[float, List[Row]]] = {}


class FileLockedError(Exception):
    """El archivo está abierto por otro programa y no se puede sobrescribir."""


def clear_cache() -> None:
    _cache.clear()


def read_data(filename: str) -> List[Row]:
    """
    Devuelve las filas del archivo indicado.
    Si el archivo no existe devuelve una lista vacía.
    Se devuelve una copia de la lista para que el llamante pueda modificarla
    sin alterar la caché.
    """
    path = get_file_path(filename)
    if not path.exists():
        return []

    mtime = path.stat().st_mtime
    cached = _cache.get(filename)
    if cached is not None and cached[0] == mtime:
        return list(cached[1])

    rows = rows_from_frame(read_sheet(path))
    _cache[filename] = (mtime, rows)
    logger.info("Cargado %s (%d filas)", filename, len(rows))
    return list(rows)


def write_data(filename: str, content: bytes) -> None:
    """
    Escribe el contenido binario tal cual (subidas de archivos).
    Reintenta MAX_WRITE_RETRIES veces si el archivo está bloqueado.
    """
    path = get_file_path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    attempts = 0
    while True:
        try:
            path.write_bytes(content)
            break
        except (PermissionError, BlockingIOError) as e:
            attempts += 1
            logger.warning(
                "Intento %d fallido al guardar %s: %s", attempts, filename, e
            )
            if attempts >= MAX_WRITE_RETRIES:
                raise FileLockedError(
                    f"El archivo {filename} está bloqueado o abierto. "
                    f"Ciérrelo y reintente (se intentó guardar {MAX_WRITE_RETRIES} veces)."
                ) from e
            time.sleep(RETRY_DELAY_SECONDS)

    # Cualquier escritura invalida toda la caché
    clear_cache()
    logger.info("Guardado %s (%d bytes)", filename, len(content))


def rows_to_xlsx(rows: List[Row]) -> bytes:
    """
    Serializa filas a un libro .xlsx con una sola hoja.
    Las columnas siguen el orden de aparición en las filas.
    """
    columns: List[str] = []
    for row in rows:
        for col in row:
            if col not in columns:
                columns.append(col)

    df = pd.DataFrame(rows, columns=columns)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
    return buffer.getvalue()


def write_rows(filename: str, rows: List[Row]) -> None:
    write_data(filename, rows_to_xlsx(rows))


def append_data(filename: str, new_row: Dict[str, Any]) -> List[Row]:
    """
    Añade una fila al final del archivo y devuelve todas las filas.
    """
    rows = read_data(filename)
    rows.append(dict(new_row))
    write_rows(filename, rows)
    return rows
