import json
import sys
from typing import Optional, TextIO

from analysis import CrossSellStats, MotiveTally


def format_motive_tally(tally: MotiveTally) -> str:
    return json.dumps(tally, indent=2, ensure_ascii=False)


def format_ratio(stats: CrossSellStats) -> str:
    """
    Porcentaje multi-producto con dos decimales, o "N/A" si no hay clientes.
    """
    pct = stats.ratio_pct
    if pct is None:
        return "N/A"
    return f"{pct:.2f}%"


def print_report(
    tally: MotiveTally,
    stats: CrossSellStats,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Escribe los dos bloques del informe: motivos de anulación en JSON
    y estadísticas de venta cruzada.
    """
    out = stream if stream is not None else sys.stdout

    print("--- Motivos de Anulación ---", file=out)
    print(format_motive_tally(tally), file=out)

    print("\n--- Cross Selling Stats ---", file=out)
    print(f"Clientes con 1 producto: {stats.single_product}", file=out)
    print(f"Clientes multi-producto: {stats.multi_product}", file=out)
    print(f"Ratio Multi-producto: {format_ratio(stats)}", file=out)
