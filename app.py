from __future__ import annotations
import logging
import streamlit as st
import pandas as pd
from training_core.ingest import IngestionError, TEXT_EXTENSIONS, WORKBOOK_EXTENSIONS
from training_core.pipeline import run_pipeline
from training_core.export import export_metrics_to_excel_bytes
from training_core.state import (
    AppState, LoadStarted, LoadSucceeded, LoadFailed, Reset, Login,
    TAB_GENERAL, TAB_EVALUATIONS, TAB_QUESTIONS, TAB_SURVEYS, TAB_MULTIPLE,
    DASHBOARD_REGION_ID, reduce, tab_has_data,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("training_dashboard")

st.set_page_config(page_title="Dashboard de Capacitación", layout="wide")
st.title("Dashboard de Capacitación Corporativa")

TAB_LABELS = {
    TAB_GENERAL: "General",
    TAB_EVALUATIONS: "Evaluaciones",
    TAB_QUESTIONS: "Preguntas",
    TAB_SURVEYS: "Encuestas abiertas",
    TAB_MULTIPLE: "Opción múltiple",
}
EMPTY_TAB_MSG = {
    TAB_EVALUATIONS: "No hay hoja de resultados de evaluación en este archivo.",
    TAB_QUESTIONS: "No hay hoja de preguntas y respuestas en este archivo.",
    TAB_SURVEYS: "No hay hoja de encuestas abiertas en este archivo.",
    TAB_MULTIPLE: "No hay hoja de encuestas de opción múltiple en este archivo.",
}
# =========================

# Estado
# =========================
if "app_state" not in st.session_state:
    # las credenciales viven fuera de esta app
    st.session_state["app_state"] = reduce(AppState(), Login())


def dispatch(action) -> AppState:
    st.session_state["app_state"] = reduce(st.session_state["app_state"], action)
    return st.session_state["app_state"]


def _slices_df(slices) -> pd.DataFrame:
    return pd.DataFrame([(s.name, s.value) for s in slices], columns=["Categoría", "Cantidad"]).set_index("Categoría")
# =========================

# Carga
# =========================
upload = st.file_uploader(
    "Suba el reporte de capacitación (Excel o CSV)",
    type=[ext.lstrip(".") for ext in WORKBOOK_EXTENSIONS + TEXT_EXTENSIONS],
    accept_multiple_files=False,
)

c1, c2 = st.columns(2)
with c1:
    process_clicked = st.button("Procesar archivo", disabled=upload is None)
with c2:
    if st.button("Reiniciar"):
        dispatch(Reset())

if process_clicked and upload is not None:
    state = st.session_state["app_state"]
    if not state.busy:
        dispatch(LoadStarted(upload.name))
        with st.spinner("Procesando..."):
            try:
                dispatch(LoadSucceeded(run_pipeline(upload.name, upload.getvalue())))
            except IngestionError as e:
                dispatch(LoadFailed(str(e)))
            except Exception as e:
                # busy nunca queda en True
                logger.exception("Fallo inesperado procesando %s", upload.name)
                dispatch(LoadFailed(f"Error inesperado: {e}"))

state: AppState = st.session_state["app_state"]
if state.error:
    st.error(f"No se pudo procesar el archivo: {state.error}")

metrics = state.metrics
if metrics is None:
    st.info("Suba un archivo para ver el tablero.")
    st.stop()
# =========================

# Tablero
# =========================
st.markdown(f'<div id="{DASHBOARD_REGION_ID}"></div>', unsafe_allow_html=True)
st.caption(f"Archivo: {state.file_name} · Curso principal: {metrics.primary_course_name}")

tabs = st.tabs([TAB_LABELS[t] for t in TAB_LABELS])
tab_by_key = dict(zip(TAB_LABELS, tabs))

with tab_by_key[TAB_GENERAL]:
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Empleados", metrics.total_employees)
    k2.metric("Completitud promedio", f"{metrics.completion_rate:.1f}%")
    k3.metric("Horas promedio", f"{metrics.average_training_hours:.2f} h")
    k4.metric("Certificados", metrics.certificates_issued)

    g1, g2 = st.columns(2)
    with g1:
        st.subheader("Curso completado")
        if metrics.completion_distribution:
            st.bar_chart(_slices_df(metrics.completion_distribution))
    with g2:
        st.subheader("Certificados")
        if metrics.certificate_distribution:
            st.bar_chart(_slices_df(metrics.certificate_distribution))

    st.subheader("Rendimiento por departamento")
    st.dataframe(pd.DataFrame(
        [(d.name, round(d.completion_rate, 1), round(d.avg_score, 1)) for d in metrics.department_performance],
        columns=["Departamento", "Completitud (%)", "Puntaje promedio"],
    ), width="stretch")

    g3, g4 = st.columns(2)
    with g3:
        st.subheader("Cursos con más inscritos")
        if metrics.top_courses:
            st.bar_chart(pd.DataFrame(
                [(c.name, c.students) for c in metrics.top_courses], columns=["Curso", "Inscritos"]
            ).set_index("Curso"))
    with g4:
        st.subheader("Completados por mes")
        if metrics.monthly_progress:
            st.bar_chart(pd.DataFrame(
                [(m.month, m.completed) for m in metrics.monthly_progress], columns=["Mes", "Completados"]
            ).set_index("Mes"))

with tab_by_key[TAB_EVALUATIONS]:
    if not tab_has_data(metrics, TAB_EVALUATIONS):
        st.info(EMPTY_TAB_MSG[TAB_EVALUATIONS])
    else:
        ev = metrics.evaluation_metrics
        e1, e2, e3, e4 = st.columns(4)
        e1.metric("Evaluados", ev.total_evaluations)
        e2.metric("Intentos promedio", f"{ev.avg_attempts:.2f}")
        e3.metric("Puntaje promedio", f"{ev.avg_score:.1f}")
        e4.metric("Aprobación", f"{ev.pass_rate:.1f}%")
        st.caption(f"Respuestas correctas: {ev.global_accuracy.correct} · incorrectas: {ev.global_accuracy.incorrect}")
        if ev.attempts_distribution:
            st.bar_chart(pd.DataFrame(
                [(a.attempts, a.count) for a in ev.attempts_distribution], columns=["Intentos", "Personas"]
            ).set_index("Intentos"))
        st.subheader("Ranking")
        st.dataframe(pd.DataFrame(
            [(p.name, p.score, p.course) for p in ev.top_performers], columns=["Usuario", "Puntaje", "Curso"]
        ), width="stretch")

with tab_by_key[TAB_QUESTIONS]:
    if not tab_has_data(metrics, TAB_QUESTIONS):
        st.info(EMPTY_TAB_MSG[TAB_QUESTIONS])
    else:
        qm = metrics.question_metrics
        st.metric("Respuestas registradas", qm.total_questions_answered)
        st.dataframe(pd.DataFrame(
            [(h.question, h.course, round(h.failure_rate, 1), h.incorrect_count, h.total_attempts)
             for h in qm.hardest_questions],
            columns=["Pregunta", "Curso", "Tasa de error (%)", "Incorrectas", "Intentos"],
        ), width="stretch")

with tab_by_key[TAB_SURVEYS]:
    if not tab_has_data(metrics, TAB_SURVEYS):
        st.info(EMPTY_TAB_MSG[TAB_SURVEYS])
    else:
        sm = metrics.survey_metrics
        s1, s2 = st.columns(2)
        s1.metric("Respuestas", sm.total_responses)
        s2.metric("Encuestados", sm.unique_respondents)
        if sm.top_words:
            st.subheader("Palabras más frecuentes")
            st.bar_chart(pd.DataFrame(
                [(w.text, w.value) for w in sm.top_words[:20]], columns=["Palabra", "Frecuencia"]
            ).set_index("Palabra"))
        for gq in sm.grouped_questions:
            with st.expander(f"{gq.question} ({len(gq.answers)})", expanded=False):
                for a in gq.answers:
                    st.write(f"- {a}")

with tab_by_key[TAB_MULTIPLE]:
    if not tab_has_data(metrics, TAB_MULTIPLE):
        st.info(EMPTY_TAB_MSG[TAB_MULTIPLE])
    else:
        mm = metrics.multiple_choice_metrics
        m1, m2 = st.columns(2)
        m1.metric("Respuestas", mm.total_responses)
        m2.metric("Encuestados", mm.unique_respondents)
        for qa in mm.questions_analysis:
            st.subheader(qa.question)
            st.caption(f"{qa.course} · {qa.total_answers} respuesta(s)")
            st.bar_chart(pd.DataFrame(
                [(c.name, c.value) for c in qa.distribution], columns=["Opción", "Respuestas"]
            ).set_index("Opción"))

st.download_button(
    "Descargar resumen en Excel",
    data=export_metrics_to_excel_bytes(metrics),
    file_name="Dashboard_capacitacion.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)
