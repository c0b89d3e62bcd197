from __future__ import annotations
import re
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import pandas as pd
from .records import (
    TrainingRecord, EvaluationRecord, QuestionRecord, SurveyRecord, MultipleChoiceRecord,
    STATUS_COMPLETED, ANSWER_INCORRECT,
)
from .utils import as_text, is_affirmative, load_rules, norm_key, try_parse_date

PASS_SCORE = 70
TOP_COURSES = 5
TOP_QUESTIONS = 10
TOP_WORDS = 50
NO_ANSWER = "Sin respuesta"
DEFAULT_PRIMARY_COURSE = "General"

# meses abreviados como los muestra el locale es-ES
SPANISH_MONTHS = ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"]

COLOR_GREEN = "#10B981"
COLOR_RED = "#EF4444"
COLOR_BLUE = "#3B82F6"
COLOR_GREY = "#9CA3AF"

STOP_WORDS_ES = {
    "de", "la", "que", "el", "en", "y", "a", "los", "del", "se", "las", "por", "un", "para", "con", "no",
    "una", "su", "al", "lo", "como", "más", "pero", "sus", "le", "ya", "o", "este", "sí", "porque", "esta",
    "entre", "cuando", "muy", "sin", "sobre", "también", "me", "hasta", "hay", "donde", "quien", "desde",
    "todo", "nos", "durante", "todos", "uno", "les", "ni", "contra", "otros", "ese", "eso", "ante", "ellos",
    "e", "esto", "mí", "antes", "algunos", "qué", "unos", "yo", "otro", "otras", "otra", "él", "tanto", "esa",
    "estos", "mucho", "quienes", "nada", "muchos", "cual", "poco", "ella", "estar", "estas", "algunas", "algo",
    "nosotros", "mi", "mis", "tú", "te", "ti", "tu", "tus", "ellas", "nosotras", "vosotros", "vosotras", "os",
    "mío", "mía", "míos", "mías", "tuyo", "tuya", "tuyos", "tuyas", "suyo", "suya", "suyos", "suyas",
    "nuestro", "nuestra", "nuestros", "nuestras", "vuestro", "vuestra", "vuestros", "vuestras", "es", "son",
    "fue", "era", "está", "están", "ser", "hacer", "tener", "curso", "capacitación", "taller", "sesión",
    "bueno", "malo", "regular", "excelente", "bien", "gracias", "hola", "día", "días",
    "atención", "interés", "deseo", "acción", "aida",
}

_PUNCT_RE = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
# =========================

# Estructuras de salida (instantánea de solo lectura)
# =========================
@dataclass(frozen=True)
class ChartSlice:
    name: str
    value: int
    color: str


@dataclass(frozen=True)
class DepartmentPerformance:
    name: str
    avg_score: float
    completion_rate: float


@dataclass(frozen=True)
class CourseCount:
    name: str
    students: int


@dataclass(frozen=True)
class MonthlyCount:
    month: str
    completed: int


@dataclass(frozen=True)
class Accuracy:
    correct: int
    incorrect: int


@dataclass(frozen=True)
class AttemptsBucket:
    attempts: str
    count: int


@dataclass(frozen=True)
class Performer:
    name: str
    score: float
    course: str


@dataclass(frozen=True)
class EvaluationMetrics:
    total_evaluations: int
    avg_attempts: float
    avg_score: float
    pass_rate: float
    global_accuracy: Accuracy
    pass_distribution: Tuple[ChartSlice, ...]
    attempts_distribution: Tuple[AttemptsBucket, ...]
    top_performers: Tuple[Performer, ...]


@dataclass(frozen=True)
class HardQuestion:
    question: str
    course: str
    failure_rate: float
    incorrect_count: int
    total_attempts: int


@dataclass(frozen=True)
class QuestionMetrics:
    total_questions_answered: int
    hardest_questions: Tuple[HardQuestion, ...]


@dataclass(frozen=True)
class CourseResponses:
    name: str
    count: int


@dataclass(frozen=True)
class GroupedQuestion:
    question: str
    course: str
    answers: Tuple[str, ...]


@dataclass(frozen=True)
class WordCount:
    text: str
    value: int


@dataclass(frozen=True)
class SurveyMetrics:
    total_responses: int
    unique_respondents: int
    responses_by_course: Tuple[CourseResponses, ...]
    grouped_questions: Tuple[GroupedQuestion, ...]
    top_words: Tuple[WordCount, ...]


@dataclass(frozen=True)
class ChoiceCount:
    name: str
    value: int


@dataclass(frozen=True)
class ChoiceQuestion:
    question: str
    course: str
    total_answers: int
    distribution: Tuple[ChoiceCount, ...]


@dataclass(frozen=True)
class MultipleChoiceMetrics:
    total_responses: int
    unique_respondents: int
    questions_analysis: Tuple[ChoiceQuestion, ...]


@dataclass(frozen=True)
class DashboardMetrics:
    total_employees: int
    completion_rate: float
    average_training_hours: float
    certificates_issued: int
    completion_distribution: Tuple[ChartSlice, ...]
    certificate_distribution: Tuple[ChartSlice, ...]
    department_performance: Tuple[DepartmentPerformance, ...]
    top_courses: Tuple[CourseCount, ...]
    monthly_progress: Tuple[MonthlyCount, ...]
    primary_course_name: str
    evaluation_metrics: Optional[EvaluationMetrics] = None
    question_metrics: Optional[QuestionMetrics] = None
    survey_metrics: Optional[SurveyMetrics] = None
    multiple_choice_metrics: Optional[MultipleChoiceMetrics] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
# =========================

# Helpers
# =========================
def _slices(*items: Tuple[str, int, str]) -> Tuple[ChartSlice, ...]:
    # un gráfico de torta nunca recibe porciones en cero
    return tuple(ChartSlice(name, int(value), color) for name, value, color in items if value > 0)


def _desc(items: List[Any], key) -> List[Any]:
    # sorted es estable: los empates conservan el orden de aparición
    return sorted(items, key=lambda x: -key(x))


def _mean(values: Sequence[float]) -> float:
    return float(sum(values)) / len(values) if values else 0.0


def normalize_progress(progress: pd.Series) -> pd.Series:
    """
    Escala 0-100 decidida una sola vez para toda la colección: si el máximo es
    <= 1 (y > 0) cada valor <= 1 se toma como fracción y se multiplica por 100.
    """
    if progress.empty:
        return progress.astype(float)
    max_progress = float(progress.max())
    if 0 < max_progress <= 1.0:
        return progress.where(progress > 1, progress * 100).astype(float)
    return progress.astype(float)
# =========================

# 1) Métricas generales (hoja de cursos)
# =========================
def _training_frame(training: Sequence[TrainingRecord]) -> pd.DataFrame:
    cols = ["employee_name", "department", "course_name", "status", "course_completed_raw",
            "certificate_obtained", "score", "progress", "reproduction_hours"]
    if not training:
        return pd.DataFrame(columns=cols)
    df = pd.DataFrame([asdict(r) for r in training])
    df["progress"] = df["progress"].astype(float)
    df["score"] = df["score"].astype(float)
    df["reproduction_hours"] = df["reproduction_hours"].astype(float)
    return df


def _department_performance(df: pd.DataFrame) -> Tuple[DepartmentPerformance, ...]:
    out = []
    for dept, g in df.groupby("department", sort=False):
        rate = float(g["norm_progress"].mean()) if len(g) else 0.0
        scored = g[(g["status"] == STATUS_COMPLETED) | (g["score"] > 0)]
        avg = float(scored["score"].sum()) / max(1, len(scored))
        out.append(DepartmentPerformance(str(dept), avg, rate))
    return tuple(_desc(out, lambda d: d.completion_rate))


def _top_courses(df: pd.DataFrame) -> Tuple[CourseCount, ...]:
    counts = df.groupby("course_name", sort=False).size()
    courses = [CourseCount(str(name), int(n)) for name, n in counts.items()]
    return tuple(_desc(courses, lambda c: c.students)[:TOP_COURSES])


def _monthly_progress(training: Sequence[TrainingRecord]) -> Tuple[MonthlyCount, ...]:
    # orden de primera aparición, no cronológico
    counts: Dict[str, int] = {}
    for r in training:
        if r.status != STATUS_COMPLETED:
            continue
        d = try_parse_date(r.completion_date or r.date_assigned)
        if d is None:
            continue
        key = SPANISH_MONTHS[d.month - 1]
        counts[key] = counts.get(key, 0) + 1
    return tuple(MonthlyCount(m, n) for m, n in counts.items())
# =========================

# 2) Evaluaciones
# =========================
def dedupe_evaluations(records: Sequence[EvaluationRecord]) -> List[EvaluationRecord]:
    """
    Un registro por persona (email o, si falta, nombre; sin mayúsculas ni espacios).
    Se conserva el intento con mayor puntaje; el orden es el de primera aparición.
    """
    kept: List[EvaluationRecord] = []
    seen: Dict[str, int] = {}
    for r in records:
        key = norm_key(r.email or r.user_name)
        if key not in seen:
            seen[key] = len(kept)
            kept.append(r)
            continue
        idx = seen[key]
        if r.score > kept[idx].score:
            kept[idx] = r
    return kept


def _passed(r: EvaluationRecord) -> bool:
    s = norm_key(r.status)
    return "aprobado" in s or "pass" in s or r.score >= PASS_SCORE


def _attempts_sort_key(bucket: str) -> Tuple[int, int]:
    if bucket == "5+":
        return (1, 0)
    return (0, int(bucket))


def compute_evaluation_metrics(records: Sequence[EvaluationRecord]) -> Optional[EvaluationMetrics]:
    if not records:
        return None

    deduped = dedupe_evaluations(records)
    total = len(deduped)
    passed = sum(1 for r in deduped if _passed(r))

    attempts = Counter("5+" if r.attempts >= 5 else str(r.attempts) for r in deduped)
    attempts_distribution = tuple(
        AttemptsBucket(k, attempts[k]) for k in sorted(attempts, key=_attempts_sort_key)
    )

    performers = [Performer(r.user_name, r.score, r.course_name) for r in deduped]

    return EvaluationMetrics(
        total_evaluations=total,
        avg_attempts=_mean([r.attempts for r in deduped]),
        avg_score=_mean([r.score for r in deduped]),
        pass_rate=passed / total * 100,
        global_accuracy=Accuracy(
            correct=sum(r.correct_answers for r in deduped),
            incorrect=sum(r.incorrect_answers for r in deduped),
        ),
        pass_distribution=_slices(
            ("Aprobados", passed, COLOR_GREEN),
            ("Reprobados", total - passed, COLOR_RED),
        ),
        attempts_distribution=attempts_distribution,
        top_performers=tuple(_desc(performers, lambda p: p.score)),
    )
# =========================

# 3) Preguntas más difíciles
# =========================
def compute_question_metrics(records: Sequence[QuestionRecord]) -> Optional[QuestionMetrics]:
    if not records:
        return None

    stats: Dict[str, Dict[str, Any]] = {}
    for q in records:
        key = q.question.strip()
        cur = stats.setdefault(key, {"total": 0, "incorrect": 0, "course": q.course_name})
        cur["total"] += 1
        if q.status == ANSWER_INCORRECT:
            cur["incorrect"] += 1

    hardest = [
        HardQuestion(
            question=question,
            course=s["course"],
            failure_rate=s["incorrect"] / s["total"] * 100,
            incorrect_count=s["incorrect"],
            total_attempts=s["total"],
        )
        for question, s in stats.items()
        if s["total"] > 0 and s["incorrect"] > 0
    ]
    hardest = _desc(hardest, lambda h: h.failure_rate)[:TOP_QUESTIONS]
    return QuestionMetrics(total_questions_answered=len(records), hardest_questions=tuple(hardest))
# =========================

# 4) Encuestas abiertas
# =========================
def stop_words() -> set:
    extra = load_rules().get("stop_words", []) or []
    return STOP_WORDS_ES | {str(w).lower() for w in extra}


def tokenize(text: Any, stop: Optional[set] = None) -> List[str]:
    """Palabras significativas de una respuesta: > 2 letras y fuera de la lista de stop words."""
    if stop is None:
        stop = stop_words()
    s = _PUNCT_RE.sub(" ", as_text(text).lower())
    return [w for w in s.split() if len(w) > 2 and w not in stop]


def compute_survey_metrics(records: Sequence[SurveyRecord]) -> Optional[SurveyMetrics]:
    if not records:
        return None

    stop = stop_words()
    by_course: Dict[str, int] = {}
    groups: Dict[str, Dict[str, Any]] = {}
    words: Counter = Counter()

    for s in records:
        by_course[s.course_name] = by_course.get(s.course_name, 0) + 1
        cur = groups.setdefault(s.question, {"course": s.course_name, "answers": []})
        answer = as_text(s.answer)
        if answer:
            cur["answers"].append(answer)
            words.update(tokenize(answer, stop))

    responses_by_course = _desc([CourseResponses(n, c) for n, c in by_course.items()], lambda x: x.count)
    grouped = [
        GroupedQuestion(q, g["course"], tuple(g["answers"]))
        for q, g in groups.items()
        if g["answers"]
    ]
    # Counter conserva el orden de aparición en los empates
    top_words = _desc([WordCount(w, n) for w, n in words.items()], lambda x: x.value)[:TOP_WORDS]

    return SurveyMetrics(
        total_responses=len(records),
        unique_respondents=len({norm_key(s.email) for s in records}),
        responses_by_course=tuple(responses_by_course),
        grouped_questions=tuple(grouped),
        top_words=tuple(top_words),
    )
# =========================

# 5) Encuestas de opción múltiple
# =========================
def compute_multiple_choice_metrics(records: Sequence[MultipleChoiceRecord]) -> Optional[MultipleChoiceMetrics]:
    if not records:
        return None

    groups: Dict[str, Dict[str, Any]] = {}
    for m in records:
        cur = groups.setdefault(m.question.strip(), {"course": m.course_name, "counts": {}})
        choice = as_text(m.choice) or NO_ANSWER
        cur["counts"][choice] = cur["counts"].get(choice, 0) + 1

    analysis = []
    for question, g in groups.items():
        dist = _desc([ChoiceCount(n, v) for n, v in g["counts"].items()], lambda c: c.value)
        analysis.append(ChoiceQuestion(
            question=question,
            course=g["course"],
            total_answers=sum(g["counts"].values()),
            distribution=tuple(dist),
        ))

    return MultipleChoiceMetrics(
        total_responses=len(records),
        unique_respondents=len({norm_key(m.email) for m in records}),
        questions_analysis=tuple(analysis),
    )
# =========================

# Agregado completo
# =========================
def calculate_metrics(
    training: Sequence[TrainingRecord],
    evaluations: Sequence[EvaluationRecord] = (),
    questions: Sequence[QuestionRecord] = (),
    surveys: Sequence[SurveyRecord] = (),
    multiple_choice: Sequence[MultipleChoiceRecord] = (),
) -> DashboardMetrics:
    """
    Todas las métricas del tablero a partir de las cinco colecciones canónicas.
    Cada grupo opcional existe solo si su colección no está vacía, y ninguno
    depende de los demás.
    """
    df = _training_frame(training)
    total = len(df)
    df["norm_progress"] = normalize_progress(df["progress"])

    certificates = int(df["certificate_obtained"].map(is_affirmative).sum()) if total else 0
    completed = int(df["course_completed_raw"].map(is_affirmative).sum()) if total else 0

    top_courses = _top_courses(df) if total else ()

    return DashboardMetrics(
        total_employees=int(df["employee_name"].nunique()),
        completion_rate=float(df["norm_progress"].mean()) if total else 0.0,
        average_training_hours=float(df["reproduction_hours"].mean()) if total else 0.0,
        certificates_issued=certificates,
        completion_distribution=_slices(
            ("Completado (SI)", completed, COLOR_GREEN),
            ("No Completado", total - completed, COLOR_RED),
        ),
        certificate_distribution=_slices(
            ("Con Certificado", certificates, COLOR_BLUE),
            ("Sin Certificado", total - certificates, COLOR_GREY),
        ),
        department_performance=_department_performance(df) if total else (),
        top_courses=top_courses,
        monthly_progress=_monthly_progress(training),
        primary_course_name=top_courses[0].name if top_courses else DEFAULT_PRIMARY_COURSE,
        evaluation_metrics=compute_evaluation_metrics(evaluations),
        question_metrics=compute_question_metrics(questions),
        survey_metrics=compute_survey_metrics(surveys),
        multiple_choice_metrics=compute_multiple_choice_metrics(multiple_choice),
    )
