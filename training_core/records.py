from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple

# Estado derivado de una inscripción
STATUS_COMPLETED = "Completado"
STATUS_IN_PROGRESS = "En Progreso"
STATUS_NOT_STARTED = "No Iniciado"
STATUS_FAILED = "Reprobado"

# Estado de una respuesta individual
ANSWER_CORRECT = "Correcta"
ANSWER_INCORRECT = "Incorrecta"
ANSWER_UNKNOWN = "Desconocido"

DEFAULT_DEPARTMENT = "General"
DEFAULT_COURSE = "Curso General"
DEFAULT_QUESTION = "Sin pregunta"
DEFAULT_CHOICE = "Sin elección"
UNKNOWN = "Desconocido"
ANONYMOUS = "Anon"


@dataclass(frozen=True)
class TrainingRecord:
    id: str
    employee_name: str
    department: str
    course_name: str
    status: str
    course_completed_raw: str
    certificate_obtained: str
    score: float
    progress: float
    date_assigned: str
    completion_date: Optional[str] = None
    reproduction_hours: float = 0.0


@dataclass(frozen=True)
class EvaluationRecord:
    user_name: str
    email: str
    attempts: int
    first_attempt_date: str
    last_attempt_date: str
    correct_answers: int
    incorrect_answers: int
    total_questions: int
    score: float
    status: str
    duration_str: str
    course_name: str


@dataclass(frozen=True)
class QuestionRecord:
    user_name: str
    email: str
    question: str
    user_answer: str
    status: str
    course_name: str


@dataclass(frozen=True)
class SurveyRecord:
    email: str
    course_name: str
    survey_id: str
    question_id: str
    question: str
    answer: str


@dataclass(frozen=True)
class MultipleChoiceRecord:
    email: str
    course_name: str
    survey_id: str
    question_id: str
    question: str
    choice: str


@dataclass(frozen=True)
class ProcessedData:
    """Las cinco colecciones canónicas de una carga de archivo."""
    training: Tuple[TrainingRecord, ...] = ()
    evaluations: Tuple[EvaluationRecord, ...] = ()
    questions: Tuple[QuestionRecord, ...] = ()
    surveys: Tuple[SurveyRecord, ...] = ()
    multiple_choice: Tuple[MultipleChoiceRecord, ...] = ()
    sheet_map: dict = field(default_factory=dict, compare=False)
