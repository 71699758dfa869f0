import pytest

import registry
from registry import (
    EnteNotFoundError,
    RegistryError,
    add_ente,
    asesor_names,
    entes_by_asesor,
    find_ente,
    get_links,
    link_asesor,
    parse_link_code,
    replace_entes,
    unlink_asesor,
)
from storage import rows_to_xlsx, write_rows


@pytest.fixture
def entes(data_dir):
    write_rows(
        "entes.xlsx",
        [
            {"Código": 1001, "Nombre": "Ayuntamiento", "Tipo": "Público"},
            {"Código": 1002, "Tipo": "Privado"},
        ],
    )
    return data_dir


def test_find_ente_compares_codes_as_text(entes):
    assert find_ente("1001")["Nombre"] == "Ayuntamiento"
    assert find_ente(1001)["Nombre"] == "Ayuntamiento"
    assert find_ente("9999") is None


def test_add_ente(entes):
    rows = add_ente({"Código": "2001", "Nombre": "Club", "Tipo": "", "Año1": 2024})

    assert len(rows) == 3
    assert find_ente("2001") == {"Código": "2001", "Nombre": "Club", "Año1": 2024}


def test_add_ente_requires_code_and_name(entes):
    with pytest.raises(ValueError):
        add_ente({"Código": "", "Nombre": "Sin código"})
    with pytest.raises(ValueError):
        add_ente({"Código": "3001"})


def test_add_ente_rejects_duplicate_code(entes):
    with pytest.raises(RegistryError):
        add_ente({"Código": "1001", "Nombre": "Otro"})


def test_link_asesor(entes):
    link = link_asesor("Ana", "1001")

    assert link == {"ASESOR": "Ana", "ENTE": "Ayuntamiento - 1001"}
    assert get_links() == [link]


def test_link_ente_without_name_uses_placeholder(entes):
    link = link_asesor("Ana", 1002)

    assert link["ENTE"] == "Desconocido - 1002"


def test_link_unknown_ente(entes):
    with pytest.raises(EnteNotFoundError):
        link_asesor("Ana", "9999")
    assert get_links() == []


def test_link_requires_both_fields(entes):
    with pytest.raises(ValueError):
        link_asesor("", "1001")
    with pytest.raises(ValueError):
        link_asesor("Ana", "")


def test_unlink_asesor(entes):
    link_asesor("Ana", "1001")
    link_asesor("Luis", "1001")
    link_asesor("Ana", "1002")

    assert unlink_asesor("Ana", "1001") == 1

    assert entes_by_asesor() == {"Ana": ["1002"], "Luis": ["1001"]}


def test_unlink_missing_link_returns_zero(entes):
    link_asesor("Ana", "1001")

    assert unlink_asesor("Ana", "1002") == 0
    assert len(get_links()) == 1


@pytest.mark.parametrize(
    "value, code",
    [
        ("Ayuntamiento - 1001", "1001"),
        ("Club - Deportivo - 42", "42"),
        ("1001", "1001"),
        (1001, "1001"),
    ],
)
def test_parse_link_code(value, code):
    assert parse_link_code(value) == code


def test_replace_entes(entes):
    content = rows_to_xlsx([{"Código": 5, "Nombre": "Nuevo"}])

    assert replace_entes(content) == 1

    assert registry.get_entes() == [{"Código": 5, "Nombre": "Nuevo"}]


def test_replace_entes_rejects_invalid_upload(entes):
    with pytest.raises(ValueError):
        replace_entes(b"not an excel file")

    assert find_ente("1001") is not None


def test_replace_entes_requires_code_column(entes):
    with pytest.raises(ValueError, match="Código"):
        replace_entes(rows_to_xlsx([{"Nombre": "Sin código"}]))


def test_asesor_names_reads_asesor_column():
    asesores = [
        {"Nº": 2, "ASESOR": "Luis"},
        {"Nº": 1, "ASESOR": "Ana"},
        {"Nº": 3},
        {"Nº": 4, "ASESOR": "  "},
        {"Nº": 5, "ASESOR": "Ana"},
    ]

    assert asesor_names(asesores) == ["Ana", "Luis"]


def test_asesor_names_from_workbook(data_dir):
    write_rows("lista_asesores.xlsx", [{"Nº": 1, "ASESOR": "Ana"}, {"Nº": 2, "ASESOR": "Luis"}])

    assert asesor_names() == ["Ana", "Luis"]


def test_entes_by_asesor_with_explicit_links():
    links = [
        {"ASESOR": "Ana", "ENTE": "Ayuntamiento - 1001"},
        {"ENTE": "Club - 1003"},
    ]

    assert entes_by_asesor(links) == {"Ana": ["1001"], "Sin Asesor": ["1003"]}
