from __future__ import annotations
import pandas as pd
from io import BytesIO
from typing import Dict
from .metrics import DashboardMetrics

SHEET_SUMMARY = "Resumen"
SHEET_DEPARTMENTS = "Departamentos"
SHEET_COURSES = "Cursos"
SHEET_MONTHLY = "Mensual"
SHEET_EVALUATIONS = "Evaluaciones"
SHEET_QUESTIONS = "Preguntas difíciles"
SHEET_WORDS = "Palabras frecuentes"
SHEET_MULTIPLE = "Opción múltiple"


def metrics_to_frames(metrics: DashboardMetrics) -> Dict[str, pd.DataFrame]:
    """Una tabla por hoja; los grupos de métricas ausentes no generan hoja."""
    summary = [
        ("Empleados", metrics.total_employees),
        ("Tasa de completitud (%)", round(metrics.completion_rate, 2)),
        ("Horas promedio de reproducción", round(metrics.average_training_hours, 2)),
        ("Certificados emitidos", metrics.certificates_issued),
        ("Curso principal", metrics.primary_course_name),
    ]
    ev = metrics.evaluation_metrics
    if ev is not None:
        summary += [
            ("Evaluaciones (personas únicas)", ev.total_evaluations),
            ("Intentos promedio", round(ev.avg_attempts, 2)),
            ("Puntaje promedio", round(ev.avg_score, 2)),
            ("Tasa de aprobación (%)", round(ev.pass_rate, 2)),
            ("Respuestas correctas", ev.global_accuracy.correct),
            ("Respuestas incorrectas", ev.global_accuracy.incorrect),
        ]
    if metrics.survey_metrics is not None:
        summary += [
            ("Respuestas abiertas", metrics.survey_metrics.total_responses),
            ("Encuestados (abiertas)", metrics.survey_metrics.unique_respondents),
        ]
    if metrics.multiple_choice_metrics is not None:
        summary += [
            ("Respuestas opción múltiple", metrics.multiple_choice_metrics.total_responses),
            ("Encuestados (opción múltiple)", metrics.multiple_choice_metrics.unique_respondents),
        ]

    frames: Dict[str, pd.DataFrame] = {
        SHEET_SUMMARY: pd.DataFrame(summary, columns=["Indicador", "Valor"]),
        SHEET_DEPARTMENTS: pd.DataFrame(
            [(d.name, round(d.completion_rate, 2), round(d.avg_score, 2)) for d in metrics.department_performance],
            columns=["Departamento", "Completitud (%)", "Puntaje promedio"],
        ),
        SHEET_COURSES: pd.DataFrame(
            [(c.name, c.students) for c in metrics.top_courses],
            columns=["Curso", "Inscritos"],
        ),
        SHEET_MONTHLY: pd.DataFrame(
            [(m.month, m.completed) for m in metrics.monthly_progress],
            columns=["Mes", "Completados"],
        ),
    }

    if ev is not None:
        frames[SHEET_EVALUATIONS] = pd.DataFrame(
            [(i + 1, p.name, p.score, p.course) for i, p in enumerate(ev.top_performers)],
            columns=["Puesto", "Usuario", "Puntaje", "Curso"],
        )

    if metrics.question_metrics is not None:
        frames[SHEET_QUESTIONS] = pd.DataFrame(
            [
                (q.question, q.course, round(q.failure_rate, 2), q.incorrect_count, q.total_attempts)
                for q in metrics.question_metrics.hardest_questions
            ],
            columns=["Pregunta", "Curso", "Tasa de error (%)", "Incorrectas", "Intentos"],
        )

    if metrics.survey_metrics is not None:
        frames[SHEET_WORDS] = pd.DataFrame(
            [(w.text, w.value) for w in metrics.survey_metrics.top_words],
            columns=["Palabra", "Frecuencia"],
        )

    if metrics.multiple_choice_metrics is not None:
        rows = []
        for q in metrics.multiple_choice_metrics.questions_analysis:
            for c in q.distribution:
                pct = c.value / q.total_answers * 100 if q.total_answers else 0.0
                rows.append((q.question, q.course, c.name, c.value, round(pct, 2)))
        frames[SHEET_MULTIPLE] = pd.DataFrame(
            rows, columns=["Pregunta", "Curso", "Opción", "Respuestas", "Porcentaje (%)"]
        )

    return frames


def export_metrics_to_excel_bytes(metrics: DashboardMetrics) -> bytes:
    frames = metrics_to_frames(metrics)
    bio = BytesIO()

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        for sheet_name, df in frames.items():
            df.to_excel(writer, index=False, sheet_name=sheet_name)

        wb = writer.book
        fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter"})
        fmt_bad = wb.add_format({"bg_color": "#FCE8E6"})
        fmt_good = wb.add_format({"bg_color": "#E6F4EA"})

        def format_df_sheet(sheet_name: str, df: pd.DataFrame, default_width: int = 18, max_width: int = 60):
            ws = writer.sheets.get(sheet_name)
            if ws is None:
                return
            ws.freeze_panes(1, 0)
            ws.autofilter(0, 0, max(1, len(df)), max(0, len(df.columns) - 1))
            for col, name in enumerate(df.columns):
                ws.write(0, col, name, fmt_header)
                longest = max([len(str(name))] + [len(str(v)) for v in df.iloc[:, col].tolist()])
                ws.set_column(col, col, max(default_width, min(max_width, longest + 2)))

        for sheet_name, df in frames.items():
            format_df_sheet(sheet_name, df)

        # tasa de error alta en rojo
        if SHEET_QUESTIONS in frames and not frames[SHEET_QUESTIONS].empty:
            ws = writer.sheets[SHEET_QUESTIONS]
            last_row = len(frames[SHEET_QUESTIONS])
            ws.conditional_format(1, 2, last_row, 2, {
                "type": "cell", "criteria": ">=", "value": 50, "format": fmt_bad
            })

        # completitud por departamento: verde >= 80, rojo < 50
        if not frames[SHEET_DEPARTMENTS].empty:
            ws = writer.sheets[SHEET_DEPARTMENTS]
            last_row = len(frames[SHEET_DEPARTMENTS])
            ws.conditional_format(1, 1, last_row, 1, {
                "type": "cell", "criteria": ">=", "value": 80, "format": fmt_good
            })
            ws.conditional_format(1, 1, last_row, 1, {
                "type": "cell", "criteria": "<", "value": 50, "format": fmt_bad
            })

    return bio.getvalue()
