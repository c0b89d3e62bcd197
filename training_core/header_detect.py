from __future__ import annotations
import logging
from typing import Any, Dict, List, NamedTuple, Optional
import pandas as pd
from .utils import is_blank, is_missing, load_rules

logger = logging.getLogger(__name__)

MAX_SCAN_ROWS = 15

# Palabras que delatan la fila de encabezados (usuario/nombre/email/pregunta/respuesta/%)
HEADER_KWS = [
    "usuario", "nombre", "email", "pregunta", "respuesta", "%",
    "user", "name", "question", "answer",
]


class HeaderLocation(NamedTuple):
    row_index: int   # 0-based dentro de df_raw
    matched: bool    # False: no se encontró, se asume la fila 0


def header_keywords() -> List[str]:
    extra = load_rules().get("header_keywords", []) or []
    return HEADER_KWS + [str(k).lower() for k in extra]


def _cell_text(v: Any) -> str:
    if is_blank(v):
        return ""
    return str(v).lower()


def _row_is_header(row: pd.Series, keywords: List[str]) -> bool:
    for v in row.tolist():
        s = _cell_text(v)
        if s and any(k in s for k in keywords):
            return True
    return False


def locate_header(df_raw: pd.DataFrame, max_scan_rows: int = MAX_SCAN_ROWS) -> HeaderLocation:
    """
    Primera fila (de arriba hacia abajo, dentro de las primeras max_scan_rows)
    con alguna celda que contenga una palabra clave de encabezado.
    Si ninguna califica, se asume la fila 0.
    """
    keywords = header_keywords()
    grid = df_raw.iloc[:, 1:]  # sin _origin_row
    for i in range(min(max_scan_rows, len(grid))):
        if _row_is_header(grid.iloc[i], keywords):
            return HeaderLocation(i, True)

    logger.debug("Sin fila de encabezado reconocible; se usa la fila 0")
    return HeaderLocation(0, False)
# =========================

# Re-parseo con la fila de encabezado elegida
# =========================
def _make_unique(cols: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    out = []
    for c in cols:
        n = seen.get(c, 0) + 1
        seen[c] = n
        out.append(c if n == 1 else f"{c}__{n}")
    return out


def _clean_header_cell(v: Any) -> str:
    if is_blank(v):
        return ""
    s = str(v).replace("\ufeff", "").strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ('"', "'"):
        s = s[1:-1].strip()
    return s


def rows_from_header(df_raw: pd.DataFrame, header_row: int) -> List[Dict[str, Any]]:
    """
    Filas como dicts {encabezado: valor}. Las celdas ausentes (None/NaN) no aparecen
    en el dict, así el Value Resolver pasa al siguiente alias; un texto en blanco
    sí aparece. Las filas sin ningún valor se descartan.
    """
    if df_raw.empty or header_row >= len(df_raw):
        return []

    grid = df_raw.iloc[:, 1:]
    headers = []
    for c, v in enumerate(grid.iloc[header_row].tolist()):
        headers.append(_clean_header_cell(v) or f"col_{c + 1}")
    headers = _make_unique(headers)

    rows: List[Dict[str, Any]] = []
    for values in grid.iloc[header_row + 1:].itertuples(index=False, name=None):
        row = {h: v for h, v in zip(headers, values) if not is_missing(v)}
        if row:
            rows.append(row)
    return rows


def build_rows(df_raw: pd.DataFrame, override_row: Optional[int] = None) -> List[Dict[str, Any]]:
    if override_row is None:
        header_row = locate_header(df_raw).row_index
    else:
        header_row = int(override_row)
    return rows_from_header(df_raw, header_row)
