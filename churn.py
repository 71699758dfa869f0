"""
Riesgo de anulación de las pólizas en vigor.

Para cada factor (ramo, compañía y antigüedad) se compara la tasa de
anulación de su categoría con la tasa media de la cartera. El riesgo de una
póliza activa es la tasa media multiplicada por los tres factores.
"""

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ramos import get_ramo
from utils import (
    ANULACION_COL,
    EFECTO_COL,
    Row,
    get_compania,
    get_ente_comercial,
    get_estado,
    get_poliza,
    get_producto,
    is_empty_cell,
)

CANCELLED_MARKERS = ("anula", "baja")
ACTIVE_MARKERS = ("vigor", "pendien", "cartera", "cobro", "suspension")

# Por debajo de este número de pólizas la categoría se considera neutra
MIN_CATEGORY_SIZE = 5
MAX_SCORE = 0.99
MIN_SCORE = 0.01
DAYS_PER_MONTH = 30.44
EXCEL_EPOCH = dt.date(1899, 12, 30)


@dataclass
class FactorCount:
    total: int = 0
    cancelled: int = 0


@dataclass
class PolicyRisk:
    poliza: str
    ente: str
    ramo: str
    cia: str
    seniority: str
    score: float
    factors: List[Tuple[str, float]] = field(default_factory=list)


@dataclass
class ChurnReport:
    risk_list: List[PolicyRisk]
    avg_churn: float
    total_active: int

    @property
    def at_high_risk(self) -> int:
        """Pólizas con más del doble de riesgo que la media."""
        return sum(1 for r in self.risk_list if r.score > self.avg_churn * 2)


def is_cancelled(row: Row) -> bool:
    estado = (get_estado(row) or "").lower()
    return any(marker in estado for marker in CANCELLED_MARKERS)


def is_active(row: Row) -> bool:
    estado = (get_estado(row) or "").lower()
    return any(marker in estado for marker in ACTIVE_MARKERS)


def parse_any_date(value: Any) -> Optional[dt.date]:
    """
    Interpreta una fecha del Excel:
    - fecha/datetime ya tipados
    - número de serie de Excel
    - texto "dd/mm/aaaa" o "dd-mm-aaaa"
    - cualquier otro texto que entienda pandas
    Devuelve None si no se puede interpretar.
    """
    if is_empty_cell(value):
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return EXCEL_EPOCH + dt.timedelta(days=int(value))

    text = str(value).strip()
    parts = text.replace("-", "/").split("/")
    if len(parts) == 3 and all(p.isdigit() for p in parts) and len(parts[2]) == 4:
        day, month, year = (int(p) for p in parts)
        try:
            return dt.date(year, month, day)
        except ValueError:
            return None

    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def seniority_range(start: Optional[dt.date], end: dt.date) -> str:
    if start is None:
        return "Desconocido"
    months = (end - start).days / DAYS_PER_MONTH
    if months < 12:
        return "< 1 año"
    if months < 24:
        return "1-2 años"
    if months < 60:
        return "2-5 años"
    return "> 5 años"


def unique_polizas(polizas: Iterable[Row]) -> List[Row]:
    """
    Una fila por número de póliza. Si alguna versión está anulada
    se queda esa, que es la que cuenta para la tasa de anulación.
    """
    by_number: Dict[str, Row] = {}
    for row in polizas:
        number = get_poliza(row) or "S/N"
        if number not in by_number or is_cancelled(row):
            by_number[number] = row
    return list(by_number.values())


def _factor_keys(row: Row, today: dt.date) -> Dict[str, str]:
    cancelled = is_cancelled(row)
    efecto = parse_any_date(row.get(EFECTO_COL))
    end = (parse_any_date(row.get(ANULACION_COL)) or today) if cancelled else today
    return {
        "Ramo": get_ramo(get_producto(row)),
        "Compañía": get_compania(row) or "Otros",
        "Antigüedad": seniority_range(efecto, end),
    }


def churn_risk(polizas: Iterable[Row], today: Optional[dt.date] = None) -> ChurnReport:
    """
    Calcula el riesgo de anulación de cada póliza activa.
    Solo se devuelven las pólizas con riesgo apreciable, de mayor a menor.
    """
    today = today or dt.date.today()
    population = unique_polizas(polizas)
    cancelled = [p for p in population if is_cancelled(p)]
    active = [p for p in population if is_active(p)]

    if not population or not active:
        avg = len(cancelled) / (len(population) or 1)
        return ChurnReport(risk_list=[], avg_churn=avg, total_active=len(active))

    avg_churn = len(cancelled) / len(population)

    counts: Dict[str, Dict[str, FactorCount]] = {}
    for row in population:
        row_cancelled = is_cancelled(row)
        for factor, key in _factor_keys(row, today).items():
            count = counts.setdefault(factor, {}).setdefault(key, FactorCount())
            count.total += 1
            if row_cancelled:
                count.cancelled += 1

    def factor_risk(factor: str, key: str) -> float:
        count = counts.get(factor, {}).get(key)
        if count is None or count.total < MIN_CATEGORY_SIZE:
            return 1.0
        return (count.cancelled / count.total) / (avg_churn or 0.01)

    risks: List[PolicyRisk] = []
    for row in active:
        # Las pólizas activas se miden hasta hoy
        keys = {
            "Ramo": get_ramo(get_producto(row)),
            "Compañía": get_compania(row) or "Otros",
            "Antigüedad": seniority_range(parse_any_date(row.get(EFECTO_COL)), today),
        }
        factors = [(name, factor_risk(name, key)) for name, key in keys.items()]
        raw_score = 1.0
        for _, impact in factors:
            raw_score *= impact

        risks.append(
            PolicyRisk(
                poliza=get_poliza(row) or "S/N",
                ente=get_ente_comercial(row) or "Cliente Desconocido",
                ramo=keys["Ramo"],
                cia=keys["Compañía"],
                seniority=keys["Antigüedad"],
                score=min(MAX_SCORE, avg_churn * raw_score),
                factors=sorted(factors, key=lambda f: -f[1]),
            )
        )

    risk_list = sorted((r for r in risks if r.score > MIN_SCORE), key=lambda r: -r.score)
    return ChurnReport(risk_list=risk_list, avg_churn=avg_churn, total_active=len(active))
