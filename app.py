from typing import IO, List

import pandas as pd
import plotly.express as px
import streamlit as st

from analysis import (
    asesor_productivity,
    compania_breakdown,
    cross_sell_stats,
    estado_breakdown,
    product_mix_by_ramo,
    tally_motives,
)
from churn import churn_risk
from config import POLIZAS_FILE, setup_logging
from data_loader import SpreadsheetError, read_rows
from registry import (
    ASESOR_COL,
    CODIGO_COL,
    ENTE_COL,
    NOMBRE_COL,
    TIPO_COL,
    ANO_COL,
    RegistryError,
    add_ente,
    asesor_names,
    get_asesores,
    get_entes,
    get_links,
    link_asesor,
    parse_link_code,
    replace_entes,
    unlink_asesor,
)
from report import format_ratio
from storage import FileLockedError, read_data
from utils import Row


st.set_page_config(
    page_title="Métricas de cartera",
    page_icon="📊",
    layout="wide",
)


@st.cache_data(show_spinner=False)
def load_uploaded_polizas(file: IO[bytes]) -> List[Row]:
    """
    Lee un listado de pólizas subido desde el navegador.
    Se cachea mientras el archivo no cambie.
    """
    return read_rows(file)


def show_asesores() -> None:
    st.subheader("Asesores")
    asesores = get_asesores()
    if not asesores:
        st.info("No hay asesores registrados.")
        return
    st.dataframe(pd.DataFrame(asesores), use_container_width=True, hide_index=True)


def show_entes() -> None:
    """
    Listado de entes, alta manual y sustitución del Excel completo.
    """
    st.subheader("Entes")
    entes = get_entes()
    if entes:
        st.dataframe(pd.DataFrame(entes), use_container_width=True, hide_index=True)
    else:
        st.info("No hay entes registrados.")

    with st.expander("Añadir ente"):
        code = st.text_input("Código", key="new_ente_code")
        name = st.text_input("Nombre", key="new_ente_name")
        tipo = st.text_input("Tipo", key="new_ente_tipo")
        year = st.number_input(
            "Año de alta",
            min_value=1900,
            max_value=2100,
            value=2024,
            step=1,
            key="new_ente_year",
        )
        if st.button("Crear ente", key="create_ente_btn"):
            try:
                rows = add_ente(
                    {
                        CODIGO_COL: code.strip(),
                        NOMBRE_COL: name.strip(),
                        TIPO_COL: tipo.strip(),
                        ANO_COL: int(year),
                    }
                )
            except (ValueError, RegistryError, FileLockedError) as e:
                st.error(str(e))
            else:
                st.success(f"Ente '{name}' creado. Total: {len(rows)}")
                st.rerun()

    with st.expander("Sustituir Excel de entes"):
        uploaded = st.file_uploader("Sube entes.xlsx", type=["xlsx"], key="entes_upload")
        if uploaded is not None and st.button("Reemplazar", key="replace_entes_btn"):
            try:
                count = replace_entes(uploaded.getvalue())
            except (ValueError, FileLockedError) as e:
                st.error(str(e))
            else:
                st.success(f"Archivo actualizado correctamente ({count} entes).")


def show_links() -> None:
    """
    Enlazar asesores con entes y eliminar enlaces existentes.
    """
    st.subheader("Enlazar asesor con ente")

    names = asesor_names()
    col1, col2 = st.columns(2)
    if names:
        asesor = col1.selectbox("Asesor", options=names, key="link_asesor")
    else:
        asesor = col1.text_input("Asesor", key="link_asesor_text")
    ente_code = col2.text_input("Código de ente", key="link_ente_code")

    if st.button("Enlazar", type="primary", key="link_btn"):
        try:
            link = link_asesor(asesor, ente_code.strip())
        except (ValueError, RegistryError, FileLockedError) as e:
            st.error(str(e))
        else:
            st.success(f"Enlazado correctamente: {link[ASESOR_COL]} → {link[ENTE_COL]}")

    st.markdown("---")
    st.subheader("Enlaces existentes")
    links = get_links()
    if not links:
        st.info("No hay enlaces registrados.")
        return

    for i, link in enumerate(links):
        cols = st.columns([3, 4, 1])
        cols[0].write(str(link.get(ASESOR_COL, "")))
        cols[1].write(str(link.get(ENTE_COL, "")))
        if cols[2].button("🗑", key=f"unlink_{i}"):
            try:
                unlink_asesor(
                    str(link.get(ASESOR_COL, "")),
                    parse_link_code(link.get(ENTE_COL, "")),
                )
            except (ValueError, FileLockedError) as e:
                st.error(str(e))
            else:
                st.rerun()


def show_analysis() -> None:
    """
    Motivos de anulación, venta cruzada, mix de producto por ramo,
    productividad de asesores y riesgo de anulación.
    """
    st.subheader("Análisis del listado de pólizas")

    uploaded = st.file_uploader(
        "Analizar otro listado (opcional)", type=["xlsx"], key="polizas_upload"
    )
    try:
        if uploaded is not None:
            rows = load_uploaded_polizas(uploaded)
        else:
            rows = read_data(POLIZAS_FILE)
    except (FileNotFoundError, SpreadsheetError) as e:
        st.error(f"No se pudo leer el listado: {e}")
        return

    if not rows:
        st.info(f"No hay datos en {POLIZAS_FILE}. Sube un listado para comenzar.")
        return

    stats = cross_sell_stats(rows)
    col1, col2, col3 = st.columns(3)
    col1.metric("Clientes con 1 producto", f"{stats.single_product:,}")
    col2.metric("Clientes multi-producto", f"{stats.multi_product:,}")
    col3.metric("Ratio multi-producto", format_ratio(stats))

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("Motivos de anulación")
        tally = tally_motives(rows)
        if tally:
            motives = (
                pd.DataFrame(list(tally.items()), columns=["Motivo", "Pólizas"])
                .sort_values("Pólizas", ascending=False)
            )
            fig_bar = px.bar(motives, x="Motivo", y="Pólizas", title="Pólizas anuladas por motivo")
            st.plotly_chart(fig_bar, use_container_width=True)
        else:
            st.info("No hay pólizas anuladas con motivo.")

    with col2:
        st.subheader("Mix de producto por ramo")
        mix = pd.DataFrame(list(product_mix_by_ramo(rows).items()), columns=["Ramo", "Pólizas"])
        fig_pie = px.pie(mix, names="Ramo", values="Pólizas", title="Pólizas por ramo")
        st.plotly_chart(fig_pie, use_container_width=True)

    show_productivity(rows)
    show_churn(rows)


def show_productivity(polizas: List[Row]) -> None:
    """
    Productividad por asesor y desgloses por estado y compañía.
    Solo cuentan las pólizas de entes enlazados a algún asesor.
    """
    st.markdown("---")
    st.subheader("Productividad de asesores")

    links = get_links()
    if not links:
        st.info("No hay enlaces asesor-ente: enlaza entes para ver la productividad.")
        return

    productivity = pd.DataFrame(
        [
            {
                "Asesor": s.asesor,
                "Entes": s.num_entes,
                "Primas": s.total_primas,
                "Pólizas": s.num_polizas,
                "Primas por ente": s.avg_primas,
            }
            for s in asesor_productivity(polizas, links, asesor_names())
        ]
    )
    st.dataframe(
        productivity,
        column_config={
            "Primas": st.column_config.NumberColumn("Primas", format="%.2f €"),
            "Primas por ente": st.column_config.NumberColumn("Primas por ente", format="%.2f €"),
        },
        hide_index=True,
        use_container_width=True,
    )

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("Pólizas por estado")
        estados = pd.DataFrame(
            [{"Estado": s.estado, "Pólizas": s.polizas, "Primas": s.primas}
             for s in estado_breakdown(polizas, links)]
        )
        if not estados.empty:
            fig_estados = px.bar(estados, x="Estado", y="Pólizas", title="Pólizas por estado")
            st.plotly_chart(fig_estados, use_container_width=True)
        else:
            st.info("Ninguna póliza pertenece a un ente enlazado.")

    with col2:
        st.subheader("Compañías")
        companias = pd.DataFrame(
            [
                {
                    "Compañía": s.company,
                    "Primas": s.primas,
                    "Pólizas": s.polizas,
                    "Entes": len(s.entes),
                    "Asesores": len(s.asesores),
                    "Ticket medio": s.ticket_medio,
                }
                for s in compania_breakdown(polizas, links)
            ]
        )
        if not companias.empty:
            st.dataframe(companias, hide_index=True, use_container_width=True)
        else:
            st.info("Ninguna póliza pertenece a un ente enlazado.")


def show_churn(polizas: List[Row]) -> None:
    st.markdown("---")
    st.subheader("Riesgo de anulación")

    report = churn_risk(polizas)
    col1, col2, col3 = st.columns(3)
    col1.metric("Pólizas activas", f"{report.total_active:,}")
    col2.metric("Tasa media de anulación", f"{report.avg_churn * 100:.2f}%")
    col3.metric("Pólizas en riesgo alto", f"{report.at_high_risk:,}")

    if not report.risk_list:
        st.info("No hay pólizas activas con riesgo apreciable.")
        return

    st.dataframe(
        pd.DataFrame(
            [
                {
                    "Póliza": r.poliza,
                    "Ente": r.ente,
                    "Ramo": r.ramo,
                    "Compañía": r.cia,
                    "Antigüedad": r.seniority,
                    "Riesgo": r.score * 100,
                    "Factor principal": r.factors[0][0],
                }
                for r in report.risk_list
            ]
        ),
        column_config={
            "Riesgo": st.column_config.NumberColumn("Riesgo", format="%.1f%%"),
        },
        hide_index=True,
        use_container_width=True,
    )


def main() -> None:
    setup_logging()

    st.title("Métricas de cartera")

    tab1, tab2, tab3, tab4 = st.tabs(["Asesores", "Entes", "Enlazar", "Análisis"])

    with tab1:
        show_asesores()
    with tab2:
        show_entes()
    with tab3:
        show_links()
    with tab4:
        show_analysis()


if __name__ == "__main__":
    main()
