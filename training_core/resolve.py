from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
from .utils import norm_key, load_rules

# Alias de encabezado por campo lógico, en orden de prioridad.
# Las reglas (rules.json -> "aliases") se prueban antes que estos.
ALIASES: Dict[str, List[str]] = {
    # hoja de cursos
    "training.id": ["ID Curso", "ID"],
    "training.employee": ["Usuario", "Nombre", "Email"],
    "training.department": ["Info extra", "País", "Departamento"],
    "training.course": ["Curso", "Nombre del curso"],
    "training.completed": ["Curso completado", "Completado"],
    "training.certificate": ["Certificado obtenido", "Certificado"],
    "training.state": ["Estado Curso", "Estado"],
    "training.score": ["Puntaje - Mejor intento", "Puntaje", "Nota", "Estado evaluación - Mejor intento"],
    "training.progress": ["% de Progreso del Curso", "Progreso", "% Progreso"],
    "training.hours": ["Horas de Reproducción", "Duración Curso", "Duración"],
    "training.date_assigned": ["Fecha de inscripción", "Fecha"],
    "training.completion_date": ["Fecha de Completitud", "F. Completitud"],

    # resultados de la evaluación final
    "evaluation.user": ["Usuario", "Nombre"],
    "evaluation.email": ["Email", "Correo"],
    "evaluation.attempts": ["Cantidad de intentos rendidos", "Intentos"],
    "evaluation.first_attempt": ["Fecha del primer intento", "Fecha Inicio"],
    "evaluation.last_attempt": ["Fecha del último intento", "Fecha Fin"],
    "evaluation.correct": ["Respuestas correctas - Mejor intento", "Correctas"],
    "evaluation.incorrect": ["Respuestas erróneas - Mejor intento", "Erróneas", "Incorrectas"],
    "evaluation.total_questions": ["Total preguntas - Mejor intento", "Total Preguntas"],
    "evaluation.score": ["Puntaje - Mejor intento", "Puntaje", "Nota"],
    "evaluation.status": ["Estado evaluación - Mejor intento", "Estado"],
    "evaluation.duration": ["Duración de resolución", "Duración"],
    "evaluation.course": ["Nombre del curso", "Curso"],

    # preguntas y respuestas
    "question.user": ["Usuario", "Nombre"],
    "question.email": ["Email", "Correo"],
    "question.text": ["Pregunta"],
    "question.answer": ["Respuesta del último intento", "Respuesta", "Comentario"],
    "question.status": ["Estado", "Resultado"],
    "question.course": ["Nombre del curso", "Curso"],

    # encuestas abiertas
    "survey.email": ["Email", "Correo", "Usuario"],
    "survey.course": ["Curso", "Nombre del curso"],
    "survey.survey_id": ["Id Survey", "Id Encuesta"],
    "survey.question_id": ["Id Pregunta"],
    "survey.question": ["Pregunta"],
    "survey.answer": ["Respuesta", "Comentario", "Texto", "Respuesta Abierta", "F"],

    # encuestas de opción múltiple
    "multiple.email": ["Email", "Correo", "Usuario"],
    "multiple.course": ["Curso", "Nombre del curso"],
    "multiple.survey_id": ["Id Survey", "Id Encuesta"],
    "multiple.question_id": ["Id Pregunta"],
    "multiple.question": ["Pregunta"],
    "multiple.choice": ["Elección", "Respuesta", "Opción"],
}


def resolve(row: Optional[Mapping[str, Any]], *aliases: str) -> Any:
    """
    Valor de la primera columna de `row` que coincide con algún alias.

    Los alias se prueban en el orden dado; la comparación ignora mayúsculas y
    espacios alrededor. Devuelve None si ninguno coincide (nunca lanza).
    """
    if not row:
        return None
    keyed = [(norm_key(k), k) for k in row.keys()]
    for alias in aliases:
        a = norm_key(alias)
        for nk, k in keyed:
            if nk == a:
                return row[k]
    return None


def field_aliases(field: str) -> List[str]:
    if field not in ALIASES:
        raise KeyError(f"Campo desconocido: {field}")
    extra = (load_rules().get("aliases", {}) or {}).get(field, []) or []
    out: List[str] = []
    for a in list(extra) + ALIASES[field]:
        if norm_key(a) not in {norm_key(x) for x in out}:
            out.append(str(a))
    return out


def resolve_field(row: Optional[Mapping[str, Any]], field: str) -> Any:
    return resolve(row, *field_aliases(field))
