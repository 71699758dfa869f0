import logging
import zipfile
from pathlib import Path
from typing import IO, List, Union

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from utils import Row, clean_cell, is_empty_cell

logger = logging.getLogger(__name__)

PathOrBuffer = Union[str, Path, IO[bytes]]


class SpreadsheetError(Exception):
    """Error base al leer un libro Excel."""


class UnreadableFileError(SpreadsheetError):
    """El archivo existe pero no se puede abrir (permisos, es un directorio...)."""


class SpreadsheetParseError(SpreadsheetError):
    """El archivo no es un libro Excel válido."""


def read_sheet(source: PathOrBuffer) -> pd.DataFrame:
    """
    Lee la primera hoja de un libro .xlsx y la devuelve como DataFrame.

    Se lee con dtype=object para conservar los valores tal cual vienen en la
    celda (un NIF numérico sigue siendo un int, no un float).
    Lanza FileNotFoundError, UnreadableFileError o SpreadsheetParseError.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"No existe el archivo: {path}")
        if path.is_dir():
            raise UnreadableFileError(f"La ruta es un directorio, no un archivo: {path}")

    try:
        df = pd.read_excel(source, sheet_name=0, dtype=object, engine="openpyxl")
    except PermissionError as e:
        raise UnreadableFileError(f"Sin permisos para leer {source}: {e}") from e
    except (ValueError, KeyError, InvalidFileException, zipfile.BadZipFile, OSError) as e:
        raise SpreadsheetParseError(f"No se pudo interpretar el libro {source}: {e}") from e

    # Normalizamos nombres de columnas (quitamos espacios alrededor)
    df.columns = [str(col).strip() for col in df.columns]
    return df


def rows_from_frame(df: pd.DataFrame) -> List[Row]:
    """
    Convierte un DataFrame en una lista de filas.
    Las celdas vacías se omiten, igual que al exportar una hoja a JSON.
    """
    rows: List[Row] = []
    for record in df.to_dict(orient="records"):
        rows.append(
            {
                col: clean_cell(value)
                for col, value in record.items()
                if not is_empty_cell(value)
            }
        )
    return rows


def read_rows(source: PathOrBuffer) -> List[Row]:
    """
    Abre el libro y devuelve las filas de la primera hoja.
    No valida columnas: si falta una cabecera, la clave simplemente no existe.
    """
    rows = rows_from_frame(read_sheet(source))
    logger.debug("Leídas %d filas de %s", len(rows), source)
    return rows
