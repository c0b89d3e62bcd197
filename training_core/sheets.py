from __future__ import annotations
import logging
from typing import Dict, List, Optional, Sequence
from .utils import norm_key

logger = logging.getLogger(__name__)

COURSES = "courses"
EVALUATIONS = "evaluations"
QUESTIONS = "questions"
SURVEYS = "surveys"
MULTIPLE_CHOICE = "multiple_choice"

DATASET_KINDS = [COURSES, EVALUATIONS, QUESTIONS, SURVEYS, MULTIPLE_CHOICE]


def _is_courses(n: str) -> bool:
    return "curso" in n


def _is_evaluations(n: str) -> bool:
    return "resultados" in n or "ev" in n


def _is_questions(n: str) -> bool:
    return "preguntas" in n or "respuestas" in n


def _is_surveys(n: str) -> bool:
    if any(k in n for k in ("abiertas", "feedback", "comentarios")):
        return True
    return "encuesta" in n and "multi" not in n


def _is_multiple_choice(n: str) -> bool:
    if "multiples" in n or "múltiples" in n:
        return True
    return "encuestas" in n and "multi" in n


_MATCHERS = {
    COURSES: _is_courses,
    EVALUATIONS: _is_evaluations,
    QUESTIONS: _is_questions,
    SURVEYS: _is_surveys,
    MULTIPLE_CHOICE: _is_multiple_choice,
}


def locate_sheet(sheet_names: Sequence[str], kind: str) -> Optional[str]:
    """
    Hoja que corresponde a un dataset, o None.
    Solo la hoja de cursos tiene respaldo: la primera hoja del libro.
    """
    if kind not in _MATCHERS:
        raise ValueError(f"Dataset desconocido: {kind}")

    match = _MATCHERS[kind]
    for name in sheet_names:
        if match(norm_key(name)):
            return name

    if kind == COURSES and sheet_names:
        return sheet_names[0]
    return None


def locate_sheets(sheet_names: Sequence[str]) -> Dict[str, Optional[str]]:
    names: List[str] = list(sheet_names)
    found = {kind: locate_sheet(names, kind) for kind in DATASET_KINDS}
    for kind in DATASET_KINDS[1:]:
        if found[kind] is None:
            logger.warning("No se encontró hoja para '%s'; se omite ese grupo de métricas", kind)
    return found
