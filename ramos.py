from typing import Optional

RAMOS = [
    "SALUD",
    "ACCIDENTES",
    "VIDA RIESGO",
    "DECESOS",
    "AUTOS",
    "DIVERSOS",
    "OTROS",
]


def get_ramo(producto: Optional[str]) -> str:
    """
    Clasifica un nombre de producto en su ramo.
    Primera coincidencia gana:
    - "sanit" -> SALUD
    - "accid" -> ACCIDENTES
    - "agro" -> DIVERSOS
    - "ind.riesgo", "riesgo", "ahorro", "sialp" -> VIDA RIESGO
    - "decesos" -> DECESOS
    - "<A>" -> AUTOS, "<D>" -> DIVERSOS (con mayúsculas exactas)
    - resto -> OTROS
    """
    if not producto:
        return "OTROS"

    p = producto.lower()

    if "sanit" in p:
        return "SALUD"
    if "accid" in p:
        return "ACCIDENTES"
    if "agro" in p:
        return "DIVERSOS"
    if any(token in p for token in ("ind.riesgo", "riesgo", "ahorro", "sialp")):
        return "VIDA RIESGO"
    if "decesos" in p:
        return "DECESOS"
    if "<A>" in producto:
        return "AUTOS"
    if "<D>" in producto:
        return "DIVERSOS"

    return "OTROS"
