"""
Análisis puntual del listado de pólizas.

Calcula los motivos de anulación y el ratio de venta cruzada (clientes con
más de un producto) y los imprime por pantalla.

Uso:
    python analyze_extras.py
    python analyze_extras.py ruta/a/listado_polizas.xlsx
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from analysis import cross_sell_stats, tally_motives
from config import POLIZAS_FILE, get_file_path, setup_logging
from data_loader import SpreadsheetError, read_rows
from report import print_report

logger = logging.getLogger(__name__)


def run(path: Path, stream: Optional[TextIO] = None) -> int:
    """
    Lee el listado, calcula los recuentos e imprime el informe.
    Si el archivo no se puede leer no se imprime nada del informe y se
    devuelve 1.
    """
    try:
        rows = read_rows(path)
    except (FileNotFoundError, SpreadsheetError) as e:
        logger.error("No se pudo leer el listado de pólizas: %s", e)
        return 1

    tally = tally_motives(rows)
    stats = cross_sell_stats(rows)
    print_report(tally, stats, stream=stream)
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Motivos de anulación y ratio de venta cruzada del listado de pólizas",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help=f"Libro Excel a analizar (por defecto {POLIZAS_FILE} en el directorio de datos)",
    )
    parser.add_argument("--log-level", default=None, help="Nivel de logging (INFO, DEBUG...)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    path = Path(args.path) if args.path else get_file_path(POLIZAS_FILE)
    return run(path)


if __name__ == "__main__":
    sys.exit(main())
