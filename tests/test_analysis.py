import math

from analysis import (
    CrossSellStats,
    classify_clients,
    collect_client_products,
    cross_sell_stats,
    product_mix_by_ramo,
    tally_motives,
)


def test_tally_motives_skips_rows_without_reason():
    rows = [
        {"Mot.Anulación": "Impago"},
        {"Mot.Anulación": "Impago"},
        {"Mot.Anulación": "Error"},
        {},
    ]

    assert tally_motives(rows) == {"Impago": 2, "Error": 1}


def test_tally_motives_ignores_blank_and_nan_reasons():
    rows = [
        {"Mot.Anulación": ""},
        {"Mot.Anulación": "   "},
        {"Mot.Anulación": float("nan")},
        {"Mot.Anulación": None},
        {"Mot.Anulación": "Venta"},
    ]

    tally = tally_motives(rows)

    assert tally == {"Venta": 1}
    assert None not in tally


def test_tally_total_matches_rows_with_reason(polizas_rows):
    tally = tally_motives(polizas_rows)
    with_reason = [r for r in polizas_rows if r.get("Mot.Anulación")]

    assert sum(tally.values()) == len(with_reason)


def test_cross_sell_scenario():
    rows = [
        {"NIF/CIF Tomador": "A1", "Producto": "Auto"},
        {"NIF/CIF Tomador": "A1", "Producto": "Vida"},
        {"NIF/CIF Tomador": "B2", "Producto": "Auto"},
    ]

    stats = cross_sell_stats(rows)

    assert stats.single_product == 1
    assert stats.multi_product == 1
    assert stats.ratio == 0.5
    assert stats.ratio_pct == 50.0


def test_repeated_product_counts_as_single():
    rows = [
        {"NIF/CIF Tomador": "C3", "Producto": "Hogar"},
        {"NIF/CIF Tomador": "C3", "Producto": "Hogar"},
        {"NIF/CIF Tomador": "C3", "Producto": "Hogar"},
    ]

    stats = cross_sell_stats(rows)

    assert stats.single_product == 1
    assert stats.multi_product == 0


def test_rows_without_nif_are_ignored_and_missing_product_is_kept():
    rows = [
        {"Producto": "Auto"},
        {"NIF/CIF Tomador": "D4"},
        {"NIF/CIF Tomador": "D4", "Producto": "Auto"},
    ]

    products = collect_client_products(rows)

    assert list(products) == ["D4"]
    assert products["D4"] == {None, "Auto"}


def test_numeric_nif_groups_with_text_nif():
    rows = [
        {"NIF/CIF Tomador": 12345, "Producto": "Auto"},
        {"NIF/CIF Tomador": "12345", "Producto": "Vida"},
    ]

    assert cross_sell_stats(rows).multi_product == 1


def test_every_client_classified_once(polizas_rows):
    products = collect_client_products(polizas_rows)
    stats = classify_clients(products)

    assert stats.total_clients == len(products)


def test_zero_clients_has_undefined_ratio():
    stats = cross_sell_stats([])

    assert stats == CrossSellStats(single_product=0, multi_product=0)
    assert stats.ratio is None
    assert stats.ratio_pct is None
    assert tally_motives([]) == {}


def test_ratio_is_never_nan():
    stats = CrossSellStats(single_product=3, multi_product=1)

    assert not math.isnan(stats.ratio)
    assert stats.ratio == 0.25


def test_product_mix_by_ramo_sorted_desc(polizas_rows):
    mix = product_mix_by_ramo(polizas_rows)

    assert mix == {"AUTOS": 3, "VIDA RIESGO": 1}
    assert list(mix) == ["AUTOS", "VIDA RIESGO"]
