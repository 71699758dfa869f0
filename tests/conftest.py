from pathlib import Path

import pandas as pd
import pytest

import storage


def write_workbook(path: Path, rows) -> Path:
    """Crea un .xlsx de una hoja con las filas indicadas."""
    pd.DataFrame(rows).to_excel(path, index=False, engine="openpyxl")
    return path


@pytest.fixture
def make_workbook():
    return write_workbook


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("METRICAS_DATA_DIR", str(tmp_path))
    storage.clear_cache()
    yield tmp_path
    storage.clear_cache()


@pytest.fixture
def polizas_rows():
    return [
        {"NIF/CIF Tomador": "A1", "Producto": "Auto <A>", "Mot.Anulación": "Impago"},
        {"NIF/CIF Tomador": "A1", "Producto": "Vida Riesgo", "Mot.Anulación": "Impago"},
        {"NIF/CIF Tomador": "B2", "Producto": "Auto <A>", "Mot.Anulación": "Error"},
        {"NIF/CIF Tomador": "B2", "Producto": "Auto <A>"},
    ]
