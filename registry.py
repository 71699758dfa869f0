"""
Registro de datos "mutables": asesores, entes y enlaces asesor <-> ente.
Se apoya en storage para la persistencia en Excel.
"""

import io
import logging
from typing import Any, Dict, List, Optional

from config import ASESORES_FILE, ENTES_FILE, LINKS_FILE
from data_loader import SpreadsheetError, read_sheet
from storage import append_data, read_data, write_data, write_rows
from utils import Row, is_empty_cell

logger = logging.getLogger(__name__)

CODIGO_COL = "Código"
NOMBRE_COL = "Nombre"
TIPO_COL = "Tipo"
ANO_COL = "Año1"

ASESOR_COL = "ASESOR"
ENTE_COL = "ENTE"

UNKNOWN_ENTE_NAME = "Desconocido"
SIN_ASESOR = "Sin Asesor"
LINK_SEPARATOR = " - "


class RegistryError(Exception):
    """Error de negocio al modificar el registro."""


class EnteNotFoundError(RegistryError):
    pass


def _code_str(value: Any) -> str:
    return str(value).strip()


def get_asesores() -> List[Row]:
    return read_data(ASESORES_FILE)


def get_entes() -> List[Row]:
    return read_data(ENTES_FILE)


def get_links() -> List[Row]:
    return read_data(LINKS_FILE)


def find_ente(code: Any) -> Optional[Row]:
    """
    Busca un ente por código. Los códigos se comparan como texto,
    así 1001 (número en Excel) y "1001" son el mismo ente.
    """
    target = _code_str(code)
    for ente in get_entes():
        if CODIGO_COL in ente and _code_str(ente[CODIGO_COL]) == target:
            return ente
    return None


def add_ente(ente: Dict[str, Any]) -> List[Row]:
    """
    Da de alta un ente nuevo.
    Exige Código y Nombre y no permite códigos repetidos.
    """
    code = ente.get(CODIGO_COL)
    name = ente.get(NOMBRE_COL)
    if is_empty_cell(code) or is_empty_cell(name):
        raise ValueError("El ente debe tener Código y Nombre")

    if find_ente(code) is not None:
        raise RegistryError(f"Ya existe un ente con código {code}")

    record = {k: v for k, v in ente.items() if not is_empty_cell(v)}
    rows = append_data(ENTES_FILE, record)
    logger.info("Ente %s dado de alta", code)
    return rows


def format_link_value(ente: Row) -> str:
    name = ente.get(NOMBRE_COL) or UNKNOWN_ENTE_NAME
    return f"{name}{LINK_SEPARATOR}{_code_str(ente[CODIGO_COL])}"


def parse_link_code(value: Any) -> str:
    """
    Extrae el código de ente de un valor "Nombre - Código".
    Si no hay separador, el valor completo es el código.
    """
    text = str(value)
    parts = text.split(LINK_SEPARATOR)
    if len(parts) > 1:
        return parts[-1].strip()
    return text.strip()


def link_asesor(asesor: str, ente_code: Any) -> Row:
    """
    Enlaza un asesor con un ente existente y devuelve el enlace guardado.
    """
    if not asesor or is_empty_cell(ente_code):
        raise ValueError("Falta el asesor o el código de ente")

    ente = find_ente(ente_code)
    if ente is None:
        raise EnteNotFoundError(f"Código de Ente no existe: {ente_code}")

    link = {ASESOR_COL: asesor, ENTE_COL: format_link_value(ente)}
    append_data(LINKS_FILE, link)
    logger.info("Enlazado %s con %s", asesor, link[ENTE_COL])
    return link


def unlink_asesor(asesor: str, ente_code: Any) -> int:
    """
    Elimina los enlaces entre el asesor y el ente indicado.
    Devuelve el número de enlaces eliminados (0 si no había ninguno).
    """
    if not asesor or is_empty_cell(ente_code):
        raise ValueError("Falta el asesor o el código de ente")

    target = _code_str(ente_code)
    links = get_links()
    kept = [
        link
        for link in links
        if not (
            str(link.get(ASESOR_COL, "")) == asesor
            and parse_link_code(link.get(ENTE_COL, "")) == target
        )
    ]
    removed = len(links) - len(kept)
    if removed:
        write_rows(LINKS_FILE, kept)
        logger.info("Eliminados %d enlaces de %s con %s", removed, asesor, target)
    return removed


def asesor_names(asesores: Optional[List[Row]] = None) -> List[str]:
    """
    Nombres de asesor (columna ASESOR) ordenados y sin repetir.
    Las filas sin asesor se ignoran.
    """
    if asesores is None:
        asesores = get_asesores()
    names = {
        str(row[ASESOR_COL]).strip()
        for row in asesores
        if not is_empty_cell(row.get(ASESOR_COL))
    }
    return sorted(names)


def entes_by_asesor(links: Optional[List[Row]] = None) -> Dict[str, List[str]]:
    """
    Códigos de ente enlazados a cada asesor.
    Los enlaces sin asesor se agrupan bajo "Sin Asesor".
    """
    if links is None:
        links = get_links()
    result: Dict[str, List[str]] = {}
    for link in links:
        asesor = str(link.get(ASESOR_COL) or SIN_ASESOR)
        result.setdefault(asesor, []).append(parse_link_code(link.get(ENTE_COL, "")))
    return result


def replace_entes(content: bytes) -> int:
    """
    Sustituye entes.xlsx por el libro subido.
    Antes de escribir comprueba que es un Excel válido con columna Código.
    Devuelve el número de entes del nuevo archivo.
    """
    try:
        df = read_sheet(io.BytesIO(content))
    except SpreadsheetError as e:
        raise ValueError(f"El archivo subido no es un Excel válido: {e}") from e

    if CODIGO_COL not in df.columns:
        raise ValueError(f"El archivo subido no contiene la columna '{CODIGO_COL}'")

    write_data(ENTES_FILE, content)
    logger.info("entes.xlsx reemplazado (%d filas)", len(df))
    return len(df)
