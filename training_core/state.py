from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional, Union
from .metrics import DashboardMetrics

TAB_GENERAL = "general"
TAB_EVALUATIONS = "evaluations"
TAB_QUESTIONS = "questions"
TAB_SURVEYS = "surveys"
TAB_MULTIPLE = "multiple"

TABS = [TAB_GENERAL, TAB_EVALUATIONS, TAB_QUESTIONS, TAB_SURVEYS, TAB_MULTIPLE]

# contenedor que captura la exportación por imagen
DASHBOARD_REGION_ID = "dashboard-content"


@dataclass(frozen=True)
class AppState:
    metrics: Optional[DashboardMetrics] = None
    file_name: Optional[str] = None
    active_tab: str = TAB_GENERAL
    authenticated: bool = False
    busy: bool = False
    error: Optional[str] = None
# =========================

# Acciones
# =========================
@dataclass(frozen=True)
class LoadStarted:
    file_name: str


@dataclass(frozen=True)
class LoadSucceeded:
    metrics: DashboardMetrics


@dataclass(frozen=True)
class LoadFailed:
    message: str


@dataclass(frozen=True)
class SelectTab:
    tab: str


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Login:
    pass


@dataclass(frozen=True)
class Logout:
    pass


Action = Union[LoadStarted, LoadSucceeded, LoadFailed, SelectTab, Reset, Login, Logout]


def reduce(state: AppState, action: Action) -> AppState:
    """
    Transición pura de estado. Una carga nueva mientras otra está en curso se
    ignora; un fallo de carga conserva las métricas anteriores.
    """
    if isinstance(action, LoadStarted):
        if state.busy:
            return state
        return replace(state, busy=True, error=None, file_name=action.file_name)

    if isinstance(action, LoadSucceeded):
        return replace(state, busy=False, error=None, metrics=action.metrics, active_tab=TAB_GENERAL)

    if isinstance(action, LoadFailed):
        return replace(state, busy=False, error=action.message)

    if isinstance(action, SelectTab):
        if action.tab not in TABS:
            raise ValueError(f"Pestaña desconocida: {action.tab}")
        return replace(state, active_tab=action.tab)

    if isinstance(action, Reset):
        return replace(state, metrics=None, file_name=None, active_tab=TAB_GENERAL, busy=False, error=None)

    if isinstance(action, Login):
        return replace(state, authenticated=True)

    if isinstance(action, Logout):
        return AppState()

    raise TypeError(f"Acción desconocida: {action!r}")


def tab_has_data(metrics: Optional[DashboardMetrics], tab: str) -> bool:
    # False -> la pestaña muestra un estado vacío, no un error
    if metrics is None:
        return False
    return {
        TAB_GENERAL: True,
        TAB_EVALUATIONS: metrics.evaluation_metrics is not None,
        TAB_QUESTIONS: metrics.question_metrics is not None,
        TAB_SURVEYS: metrics.survey_metrics is not None,
        TAB_MULTIPLE: metrics.multiple_choice_metrics is not None,
    }.get(tab, False)
