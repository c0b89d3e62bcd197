from __future__ import annotations
import csv
import logging
from io import BytesIO, StringIO
from typing import Any, Dict, List, Sequence
import pandas as pd
from openpyxl import load_workbook

logger = logging.getLogger(__name__)

CSV_SHEET_NAME = "CSV"
WORKBOOK_EXTENSIONS = (".xlsx", ".xlsm")
TEXT_EXTENSIONS = (".csv", ".txt", ".tsv")


class IngestionError(Exception):
    """El archivo no se pudo leer como libro de cálculo; la corrida entera falla."""


class MissingSheetError(IngestionError):
    """No hay ninguna hoja que sirva como hoja de cursos."""
# =========================

# Matriz cruda: primera columna _origin_row (número de fila en el origen, desde 1)
# =========================
def matrix_to_frame(matrix: Sequence[Sequence[Any]]) -> pd.DataFrame:
    df_raw = pd.DataFrame([list(r) for r in matrix], dtype=object)
    df_raw.insert(0, "_origin_row", range(1, len(df_raw) + 1))
    return df_raw
# =========================

# Excel: cada hoja como matriz, desplegando celdas combinadas
# =========================
def _sheet_to_matrix_with_merged(ws) -> List[List[Any]]:
    merged_map = {}
    for r in ws.merged_cells.ranges:
        min_col, min_row, max_col, max_row = r.bounds
        top_val = ws.cell(min_row, min_col).value
        for rr in range(min_row, max_row + 1):
            for cc in range(min_col, max_col + 1):
                merged_map[(rr, cc)] = top_val

    rows = []
    for r in range(1, ws.max_row + 1):
        row_vals = []
        for c in range(1, ws.max_column + 1):
            v = ws.cell(r, c).value
            if (r, c) in merged_map and (v is None or str(v).strip() == ""):
                v = merged_map[(r, c)]
            row_vals.append(v)
        rows.append(row_vals)

    return rows


def _read_workbook_bytes(data: bytes) -> Dict[str, pd.DataFrame]:
    # cualquier fallo de openpyxl (zip roto, XML corrupto) es IngestionError
    try:
        wb = load_workbook(BytesIO(data), read_only=False, data_only=True)
        sheets: Dict[str, pd.DataFrame] = {}
        for ws in wb.worksheets:
            sheets[ws.title] = matrix_to_frame(_sheet_to_matrix_with_merged(ws))
    except Exception as e:
        logger.warning("Libro ilegible: %s: %s", type(e).__name__, e)
        raise IngestionError(f"No se pudo abrir el libro: {e}") from e
    return sheets
# =========================

# CSV: lectura tolerante desde bytes (exportaciones de LMS)
# =========================
def _guess_delimiter(sample_text: str) -> str:
    # exportaciones en español suelen venir con ';', a veces ',' o tabs
    try:
        dialect = csv.Sniffer().sniff(sample_text, delimiters=";,\t|")
        if dialect.delimiter:
            return dialect.delimiter
    except csv.Error:
        pass

    candidates = [";", ",", "\t", "|"]
    lines = [ln for ln in sample_text.splitlines() if ln.strip()][:20]
    if not lines:
        return ","

    scores = {}
    for d in candidates:
        cnts = [ln.count(d) for ln in lines]
        scores[d] = sum(cnts) / max(1, len(cnts))

    best = max(scores.items(), key=lambda x: x[1])[0]
    return best if scores.get(best, 0) > 0 else ","


def _decode(data: bytes) -> str:
    for enc in ("utf-8-sig", "utf-8", "cp1252"):
        try:
            return data.decode(enc)
        except UnicodeDecodeError:
            continue
    # latin-1 decodifica cualquier byte
    return data.decode("latin-1")


def _read_csv_bytes(data: bytes) -> pd.DataFrame:
    # sin header: el Header Locator decide qué fila es el encabezado;
    # las filas pueden tener distinto largo (títulos, metadatos), por eso names=range(width)
    text = _decode(data)
    delim = _guess_delimiter(text[:65536])
    lines = [ln for ln in text.splitlines() if ln.strip()]
    if not lines:
        return matrix_to_frame([])

    width = max(ln.count(delim) for ln in lines) + 1
    try:
        df = pd.read_csv(
            StringIO(text),
            header=None,
            names=list(range(width)),
            sep=delim,
            engine="python",
            dtype=object,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, ValueError) as e:
        raise IngestionError(f"No se pudo leer el CSV: {e}") from e

    # columnas de más (delimitadores entre comillas) y filas de solo separadores
    df = df.dropna(axis=0, how="all").dropna(axis=1, how="all")
    return matrix_to_frame(df.values.tolist())
# =========================

# Entrada principal: bytes -> hojas
# =========================
def load_sheets(file_name: str, data: bytes) -> Dict[str, pd.DataFrame]:
    """
    Devuelve {nombre de hoja: df_raw} en el orden del libro.

    df_raw no tiene encabezado: la primera columna es _origin_row y el resto son
    las celdas tal cual (fechas como datetime si el libro las guarda como fecha).
    Un CSV se expone como una sola hoja llamada "CSV".
    """
    if not data:
        raise IngestionError("El archivo está vacío")

    if (file_name or "").lower().endswith(TEXT_EXTENSIONS):
        sheets = {CSV_SHEET_NAME: _read_csv_bytes(data)}
    else:
        sheets = _read_workbook_bytes(data)

    if not sheets:
        raise IngestionError("El libro no contiene hojas")

    logger.info("%s: %d hoja(s) leída(s): %s", file_name, len(sheets), ", ".join(sheets))
    return sheets
