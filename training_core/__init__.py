"""
Este paquete contiene:
- lectura del archivo subido (XLSX/CSV)
- detección de la fila de encabezados y de las hojas por nombre
- resolución flexible de columnas (alias)
- normalización a registros canónicos (cursos, evaluaciones, preguntas, encuestas)
- cálculo de las métricas del tablero
- estado de la aplicación y exportación a Excel
"""
from .ingest import IngestionError, MissingSheetError, load_sheets, matrix_to_frame
from .header_detect import locate_header, rows_from_header, build_rows
from .resolve import resolve, resolve_field
from .sheets import locate_sheet, locate_sheets
from .pipeline import process_file, run_pipeline
from .metrics import DashboardMetrics, calculate_metrics
from .state import AppState, reduce, tab_has_data
from .export import export_metrics_to_excel_bytes

__all__ = [
    "IngestionError",
    "MissingSheetError",
    "load_sheets",
    "matrix_to_frame",
    "locate_header",
    "rows_from_header",
    "build_rows",
    "resolve",
    "resolve_field",
    "locate_sheet",
    "locate_sheets",
    "process_file",
    "run_pipeline",
    "DashboardMetrics",
    "calculate_metrics",
    "AppState",
    "reduce",
    "tab_has_data",
    "export_metrics_to_excel_bytes",
]
