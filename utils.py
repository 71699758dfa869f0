import math
from typing import Any, Dict, Optional

# Una fila del Excel: cabecera -> valor de celda. Las celdas vacías no aparecen.
Row = Dict[str, Any]

# Cabeceras conocidas del listado de pólizas (coinciden exactamente, con tildes)
MOTIVO_COL = "Mot.Anulación"
NIF_COL = "NIF/CIF Tomador"
PRODUCTO_COL = "Producto"
PRIMAS_COL = "P.Produccion"
ESTADO_COL = "Estado"
# El listado trae la compañía con o sin tilde según la exportación
COMPANIA_COLS = ("Abrev.Cía", "Abrev.Cia")
ENTE_COMERCIAL_COL = "Ente Comercial"
POLIZA_COL = "NºPóliza"
EFECTO_COL = "F.Efecto"
ANULACION_COL = "F.Anulación"


def is_empty_cell(value: Any) -> bool:
    """
    True si la celda se considera vacía: None, NaN o cadena en blanco.
    """
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def clean_cell(value: Any) -> Any:
    """
    Convierte tipos de numpy a tipos nativos de Python para que las filas
    se puedan serializar a JSON sin sorpresas.
    """
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        try:
            return value.item()
        except (ValueError, AttributeError):
            return value
    return value


def _get_field(row: Row, column: str) -> Optional[Any]:
    value = row.get(column)
    if is_empty_cell(value):
        return None
    return value


def get_motivo(row: Row) -> Optional[str]:
    """Motivo de anulación de la póliza, o None si no tiene."""
    value = _get_field(row, MOTIVO_COL)
    return str(value).strip() if value is not None else None


def get_nif(row: Row) -> Optional[str]:
    """NIF/CIF del tomador como texto, o None."""
    value = _get_field(row, NIF_COL)
    return str(value).strip() if value is not None else None


def get_producto(row: Row) -> Optional[str]:
    value = _get_field(row, PRODUCTO_COL)
    return str(value) if value is not None else None


def get_estado(row: Row) -> Optional[str]:
    value = _get_field(row, ESTADO_COL)
    return str(value).strip() if value is not None else None


def get_compania(row: Row) -> Optional[str]:
    """Abreviatura de la compañía aseguradora, o None."""
    for column in COMPANIA_COLS:
        value = _get_field(row, column)
        if value is not None:
            return str(value).strip()
    return None


def get_primas(row: Row) -> float:
    """
    Primas de producción de la póliza.
    Acepta números o texto con coma decimal ("123,45"); lo que no se pueda
    interpretar cuenta como 0.
    """
    value = _get_field(row, PRIMAS_COL)
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return 0.0


def get_ente_comercial(row: Row) -> Optional[str]:
    value = _get_field(row, ENTE_COMERCIAL_COL)
    return str(value).strip() if value is not None else None


def get_poliza(row: Row) -> Optional[str]:
    value = _get_field(row, POLIZA_COL)
    return str(value).strip() if value is not None else None
