from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ramos import get_ramo
from registry import (
    ASESOR_COL,
    CODIGO_COL,
    ENTE_COL,
    SIN_ASESOR,
    entes_by_asesor,
    parse_link_code,
)
from utils import (
    Row,
    get_compania,
    get_ente_comercial,
    get_estado,
    get_motivo,
    get_nif,
    get_primas,
    get_producto,
)

MotiveTally = Dict[str, int]
ClientProducts = Dict[str, Set[Optional[str]]]


@dataclass(frozen=True)
class CrossSellStats:
    """
    Resultado de la clasificación de clientes por número de productos.
    Un cliente con un único producto (aunque se repita en varias pólizas)
    cuenta como mono-producto.
    """

    single_product: int
    multi_product: int

    @property
    def total_clients(self) -> int:
        return self.single_product + self.multi_product

    @property
    def ratio(self) -> Optional[float]:
        """
        Fracción de clientes multi-producto.
        None si no hay clientes: el ratio no está definido y no se fuerza a 0.
        """
        if self.total_clients == 0:
            return None
        return self.multi_product / self.total_clients

    @property
    def ratio_pct(self) -> Optional[float]:
        ratio = self.ratio
        return None if ratio is None else ratio * 100


def tally_motives(rows: Iterable[Row]) -> MotiveTally:
    """
    Cuenta las pólizas por motivo de anulación.
    Las filas sin motivo se ignoran (no generan una clave vacía).
    """
    counts: MotiveTally = {}
    for row in rows:
        motivo = get_motivo(row)
        if motivo:
            counts[motivo] = counts.get(motivo, 0) + 1
    return counts


def collect_client_products(rows: Iterable[Row]) -> ClientProducts:
    """
    Agrupa los productos distintos de cada tomador (por NIF/CIF).
    Un producto ausente se guarda como None, de modo que el cliente
    cuenta aunque la fila no traiga producto.
    """
    products: ClientProducts = {}
    for row in rows:
        nif = get_nif(row)
        if nif:
            products.setdefault(nif, set()).add(get_producto(row))
    return products


def classify_clients(products: ClientProducts) -> CrossSellStats:
    single = 0
    multi = 0
    for product_set in products.values():
        if len(product_set) > 1:
            multi += 1
        else:
            single += 1
    return CrossSellStats(single_product=single, multi_product=multi)


def cross_sell_stats(rows: Iterable[Row]) -> CrossSellStats:
    return classify_clients(collect_client_products(rows))


def product_mix_by_ramo(rows: Iterable[Row]) -> Dict[str, int]:
    """
    Número de pólizas por ramo, ordenado de mayor a menor.
    """
    counter = Counter(get_ramo(get_producto(row)) for row in rows)
    return dict(counter.most_common())


# --- Productividad de asesores y desgloses por estado / compañía ---

# código de ente -> (asesor, "Nombre - Código")
LinkIndex = Dict[str, Tuple[str, str]]


@dataclass
class AsesorStats:
    asesor: str
    num_entes: int = 0
    total_primas: float = 0.0
    num_polizas: int = 0

    @property
    def avg_primas(self) -> float:
        """Primas medias por ente enlazado."""
        return self.total_primas / self.num_entes if self.num_entes else 0.0


@dataclass
class EstadoStats:
    estado: str
    primas: float = 0.0
    polizas: int = 0


@dataclass
class CompaniaStats:
    company: str
    primas: float = 0.0
    polizas: int = 0
    entes: Set[str] = field(default_factory=set)
    asesores: Set[str] = field(default_factory=set)

    @property
    def ticket_medio(self) -> float:
        return self.primas / self.polizas if self.polizas else 0.0


def build_link_index(links: Iterable[Row]) -> LinkIndex:
    """
    Indexa los enlaces por código de ente.
    Si un ente aparece en varios enlaces gana el último, como en el Excel.
    """
    index: LinkIndex = {}
    for link in links:
        value = str(link.get(ENTE_COL, "")).strip()
        code = parse_link_code(value)
        if code:
            index[code] = (str(link.get(ASESOR_COL) or SIN_ASESOR), value)
    return index


def poliza_ente_code(row: Row, index: LinkIndex) -> Optional[str]:
    """
    Código del ente enlazado al que pertenece la póliza.
    Se busca primero en "Ente Comercial" ("Nombre - Código") y luego en la
    columna Código. None si la póliza no es de ningún ente enlazado.
    """
    ente_comercial = get_ente_comercial(row)
    if ente_comercial:
        code = parse_link_code(ente_comercial)
        if code in index:
            return code
    direct = row.get(CODIGO_COL)
    if direct is not None and str(direct).strip() in index:
        return str(direct).strip()
    return None


def linked_polizas(polizas: Iterable[Row], index: LinkIndex) -> Iterable[Tuple[Row, str]]:
    for row in polizas:
        code = poliza_ente_code(row, index)
        if code is not None:
            yield row, code


def asesor_productivity(
    polizas: Iterable[Row],
    links: List[Row],
    asesores: Iterable[str] = (),
) -> List[AsesorStats]:
    """
    Entes, primas y pólizas por asesor, ordenado por primas de mayor a menor.

    Salen todos los asesores de la lista (aunque no tengan producción) y
    también los que solo aparecen en los enlaces.
    """
    stats: Dict[str, AsesorStats] = {name: AsesorStats(asesor=name) for name in asesores}
    for asesor, codes in entes_by_asesor(links).items():
        stats.setdefault(asesor, AsesorStats(asesor=asesor)).num_entes += len(codes)

    index = build_link_index(links)
    for row, code in linked_polizas(polizas, index):
        asesor = index[code][0]
        entry = stats.setdefault(asesor, AsesorStats(asesor=asesor))
        entry.total_primas += get_primas(row)
        entry.num_polizas += 1

    return sorted(stats.values(), key=lambda s: (-s.total_primas, s.asesor))


def estado_breakdown(polizas: Iterable[Row], links: List[Row]) -> List[EstadoStats]:
    """
    Primas y pólizas de los entes enlazados por estado de la póliza,
    ordenado por número de pólizas.
    """
    stats: Dict[str, EstadoStats] = {}
    for row, _ in linked_polizas(polizas, build_link_index(links)):
        estado = get_estado(row) or "Otros"
        entry = stats.setdefault(estado, EstadoStats(estado=estado))
        entry.primas += get_primas(row)
        entry.polizas += 1
    return sorted(stats.values(), key=lambda s: (-s.polizas, s.estado))


def compania_breakdown(polizas: Iterable[Row], links: List[Row]) -> List[CompaniaStats]:
    """
    Primas, pólizas, entes y asesores distintos por compañía,
    ordenado por primas.
    """
    index = build_link_index(links)
    stats: Dict[str, CompaniaStats] = {}
    for row, code in linked_polizas(polizas, index):
        company = get_compania(row) or "Desconocida"
        entry = stats.setdefault(company, CompaniaStats(company=company))
        entry.primas += get_primas(row)
        entry.polizas += 1
        entry.entes.add(code)
        asesor = index[code][0]
        if asesor != SIN_ASESOR:
            entry.asesores.add(asesor)
    return sorted(stats.values(), key=lambda s: (-s.primas, s.company))
