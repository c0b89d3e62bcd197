from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional
import pandas as pd
from .extract import (
    extract_training_records, extract_evaluation_records, extract_question_records,
    extract_survey_records, extract_multiple_choice_records,
)
from .header_detect import build_rows
from .ingest import MissingSheetError, load_sheets
from .metrics import DashboardMetrics, calculate_metrics
from .records import ProcessedData
from .sheets import COURSES, EVALUATIONS, QUESTIONS, SURVEYS, MULTIPLE_CHOICE, locate_sheets

logger = logging.getLogger(__name__)

_EXTRACTORS: Dict[str, Callable[[List[Dict[str, Any]]], tuple]] = {
    COURSES: extract_training_records,
    EVALUATIONS: extract_evaluation_records,
    QUESTIONS: extract_question_records,
    SURVEYS: extract_survey_records,
    MULTIPLE_CHOICE: extract_multiple_choice_records,
}


def _records_for(sheets: Dict[str, pd.DataFrame], sheet_name: Optional[str], kind: str) -> tuple:
    # hoja opcional ausente -> colección vacía, sin invocar al normalizador
    if sheet_name is None:
        return ()
    rows = build_rows(sheets[sheet_name])
    records = _EXTRACTORS[kind](rows)
    logger.info("Hoja '%s' (%s): %d registro(s)", sheet_name, kind, len(records))
    return records


def process_sheets(sheets: Dict[str, pd.DataFrame]) -> ProcessedData:
    sheet_map = locate_sheets(list(sheets))
    if sheet_map[COURSES] is None:
        raise MissingSheetError("No se encontró la hoja de cursos")

    return ProcessedData(
        training=_records_for(sheets, sheet_map[COURSES], COURSES),
        evaluations=_records_for(sheets, sheet_map[EVALUATIONS], EVALUATIONS),
        questions=_records_for(sheets, sheet_map[QUESTIONS], QUESTIONS),
        surveys=_records_for(sheets, sheet_map[SURVEYS], SURVEYS),
        multiple_choice=_records_for(sheets, sheet_map[MULTIPLE_CHOICE], MULTIPLE_CHOICE),
        sheet_map=sheet_map,
    )


def process_file(file_name: str, data: bytes) -> ProcessedData:
    """Bytes del archivo subido -> las cinco colecciones canónicas."""
    return process_sheets(load_sheets(file_name, data))


def metrics_for(data: ProcessedData) -> DashboardMetrics:
    return calculate_metrics(
        data.training,
        data.evaluations,
        data.questions,
        data.surveys,
        data.multiple_choice,
    )


def run_pipeline(file_name: str, data: bytes) -> DashboardMetrics:
    """
    Corrida completa y síncrona: lectura, normalización y agregación.
    Solo los fallos a nivel de libro (IngestionError) llegan al llamador.
    """
    return metrics_for(process_file(file_name, data))
