from __future__ import annotations
from typing import Any, Dict, Iterable, Tuple
from .records import (
    TrainingRecord, EvaluationRecord, QuestionRecord, SurveyRecord, MultipleChoiceRecord,
    STATUS_COMPLETED, STATUS_IN_PROGRESS, STATUS_NOT_STARTED, STATUS_FAILED,
    ANSWER_CORRECT, ANSWER_INCORRECT, ANSWER_UNKNOWN,
    DEFAULT_DEPARTMENT, DEFAULT_COURSE, DEFAULT_QUESTION, DEFAULT_CHOICE, UNKNOWN, ANONYMOUS,
)
from .resolve import resolve_field
from .utils import (as_text, format_date, is_affirmative, is_missing, norm_key, parse_duration, parse_int, parse_percent, parse_score)

Row = Dict[str, Any]
# =========================

# Clasificaciones
# =========================
def classify_training_status(completed_raw: Any, progress: float, state: Any) -> str:
    # el orden importa: el flag de completado gana aunque "Estado" diga otra cosa
    if is_affirmative(completed_raw):
        return STATUS_COMPLETED
    if progress > 0:
        return STATUS_IN_PROGRESS
    s = norm_key(state)
    if "reprobado" in s or "fail" in s:
        return STATUS_FAILED
    return STATUS_NOT_STARTED


def classify_answer_status(raw: Any) -> str:
    # "incorrecta" contiene "correcta": se prueba primero lo incorrecto
    s = norm_key(raw)
    if "incorrect" in s:
        return ANSWER_INCORRECT
    if "correct" in s:
        return ANSWER_CORRECT
    return ANSWER_UNKNOWN
# =========================

# 1) Cursos
# =========================
def training_record_from_row(row: Row, index: int) -> TrainingRecord:
    progress = parse_percent(resolve_field(row, "training.progress"))
    completed_raw = as_text(resolve_field(row, "training.completed"), "No")
    certificate = as_text(resolve_field(row, "training.certificate"), "No")
    status = classify_training_status(completed_raw, progress, resolve_field(row, "training.state"))

    completion_date = format_date(resolve_field(row, "training.completion_date"))

    return TrainingRecord(
        id=as_text(resolve_field(row, "training.id"), f"row-{index}"),
        employee_name=as_text(resolve_field(row, "training.employee"), UNKNOWN),
        department=as_text(resolve_field(row, "training.department"), DEFAULT_DEPARTMENT),
        course_name=as_text(resolve_field(row, "training.course"), DEFAULT_COURSE),
        status=status,
        course_completed_raw=completed_raw,
        certificate_obtained=certificate,
        score=parse_score(resolve_field(row, "training.score")),
        progress=progress,
        date_assigned=format_date(resolve_field(row, "training.date_assigned")),
        completion_date=completion_date or None,
        reproduction_hours=parse_duration(resolve_field(row, "training.hours")),
    )


def extract_training_records(rows: Iterable[Row]) -> Tuple[TrainingRecord, ...]:
    return tuple(training_record_from_row(r, i) for i, r in enumerate(rows))
# =========================

# 2) Resultados de la evaluación final
# =========================
def evaluation_record_from_row(row: Row) -> EvaluationRecord:
    return EvaluationRecord(
        user_name=as_text(resolve_field(row, "evaluation.user"), ANONYMOUS),
        email=as_text(resolve_field(row, "evaluation.email")),
        attempts=parse_int(resolve_field(row, "evaluation.attempts"), 1),
        first_attempt_date=format_date(resolve_field(row, "evaluation.first_attempt")),
        last_attempt_date=format_date(resolve_field(row, "evaluation.last_attempt")),
        correct_answers=parse_int(resolve_field(row, "evaluation.correct")),
        incorrect_answers=parse_int(resolve_field(row, "evaluation.incorrect")),
        total_questions=parse_int(resolve_field(row, "evaluation.total_questions")),
        score=parse_percent(resolve_field(row, "evaluation.score")),
        status=as_text(resolve_field(row, "evaluation.status"), UNKNOWN),
        duration_str=as_text(resolve_field(row, "evaluation.duration")),
        course_name=as_text(resolve_field(row, "evaluation.course"), DEFAULT_COURSE),
    )


def extract_evaluation_records(rows: Iterable[Row]) -> Tuple[EvaluationRecord, ...]:
    return tuple(evaluation_record_from_row(r) for r in rows)
# =========================

# 3) Preguntas y respuestas
# =========================
def question_record_from_row(row: Row) -> QuestionRecord:
    return QuestionRecord(
        user_name=as_text(resolve_field(row, "question.user"), ANONYMOUS),
        email=as_text(resolve_field(row, "question.email")),
        question=as_text(resolve_field(row, "question.text"), DEFAULT_QUESTION),
        user_answer=as_text(resolve_field(row, "question.answer")),
        status=classify_answer_status(resolve_field(row, "question.status")),
        course_name=as_text(resolve_field(row, "question.course"), DEFAULT_COURSE),
    )


def extract_question_records(rows: Iterable[Row]) -> Tuple[QuestionRecord, ...]:
    return tuple(question_record_from_row(r) for r in rows)
# =========================

# 4) Encuestas abiertas / 5) Encuestas de opción múltiple
# =========================
def survey_record_from_row(row: Row) -> SurveyRecord:
    return SurveyRecord(
        email=as_text(resolve_field(row, "survey.email"), ANONYMOUS),
        course_name=as_text(resolve_field(row, "survey.course"), DEFAULT_COURSE),
        survey_id=as_text(resolve_field(row, "survey.survey_id")),
        question_id=as_text(resolve_field(row, "survey.question_id")),
        question=as_text(resolve_field(row, "survey.question"), DEFAULT_QUESTION),
        answer=as_text(resolve_field(row, "survey.answer")),
    )


def extract_survey_records(rows: Iterable[Row]) -> Tuple[SurveyRecord, ...]:
    return tuple(survey_record_from_row(r) for r in rows)


def multiple_choice_record_from_row(row: Row) -> MultipleChoiceRecord:
    # columna ausente: "Sin elección"; celda en blanco: "" (se agrega como "Sin respuesta")
    raw_choice = resolve_field(row, "multiple.choice")
    return MultipleChoiceRecord(
        email=as_text(resolve_field(row, "multiple.email"), ANONYMOUS),
        course_name=as_text(resolve_field(row, "multiple.course"), DEFAULT_COURSE),
        survey_id=as_text(resolve_field(row, "multiple.survey_id")),
        question_id=as_text(resolve_field(row, "multiple.question_id")),
        question=as_text(resolve_field(row, "multiple.question"), DEFAULT_QUESTION),
        choice=DEFAULT_CHOICE if is_missing(raw_choice) else as_text(raw_choice),
    )


def extract_multiple_choice_records(rows: Iterable[Row]) -> Tuple[MultipleChoiceRecord, ...]:
    return tuple(multiple_choice_record_from_row(r) for r in rows)
