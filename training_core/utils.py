import os
import re
import json
import logging
from functools import lru_cache
from pathlib import Path
from datetime import date, datetime
from typing import Any, Dict, Optional
import pandas as pd
from dateutil import parser as dtparser

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"
RULES_ENV = "TRAINING_DASHBOARD_RULES"

# Valores "sí" de los flags Si/No, Yes/No, True/False, Completado
AFFIRMATIVE = {"si", "yes", "true", "completado"}

def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default

def rules_path() -> Path:
    env = os.environ.get(RULES_ENV)
    if env:
        return Path(env)
    return DEFAULT_DATA_DIR / "rules.json"

@lru_cache()
def load_rules() -> Dict[str, Any]:
    """Reglas opcionales (alias extra, palabras clave de encabezado, stop words)."""
    rules = load_json(rules_path(), {})
    if not isinstance(rules, dict):
        logger.warning("Ignorando %s: se esperaba un objeto JSON", rules_path())
        return {}
    return rules

_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")


def is_missing(v: Any) -> bool:
    # celda ausente (None/NaN); un texto en blanco sí es un valor
    if v is None:
        return True
    try:
        return bool(pd.isna(v))
    except (TypeError, ValueError):
        return False


def is_blank(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip() == ""
    return is_missing(v)


def norm_key(s: Any) -> str:
    """
    Clave de comparación para nombres de columna, emails y usuarios:
    - BOM/espacios duros
    - trim
    - lower
    """
    if s is None:
        return ""
    s = str(s).replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s)
    return s.strip().lower()


def as_text(v: Any, default: str = "") -> str:
    if is_blank(v):
        return default
    return str(v).strip()


def is_affirmative(v: Any) -> bool:
    return norm_key(v) in AFFIRMATIVE


def parse_percent(v: Any) -> float:
    # 0.85, 85, "85%", " 85 % " -> float; lo que no se puede parsear -> 0
    if is_blank(v) or isinstance(v, bool):
        return 0.0
    if isinstance(v, (int, float)):
        return float(v)
    s = str(v).replace("%", "").strip().replace(",", ".")
    return _leading_float(s)


def parse_score(v: Any) -> float:
    # "8/10" -> 8, "75%" -> 75
    if isinstance(v, str):
        return parse_percent(v.split("/")[0])
    return parse_percent(v)


def parse_int(v: Any, default: int = 0) -> int:
    if is_blank(v) or isinstance(v, bool):
        return default
    if isinstance(v, (int, float)):
        return int(v)
    m = re.match(r"\s*([-+]?\d+)", str(v))
    return int(m.group(1)) if m else default


_FLOAT_RE = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)")
_HOURS_RE = re.compile(r"(\d+)\s*h")
_MINUTES_RE = re.compile(r"(\d+)\s*m")


def _leading_float(s: str) -> float:
    m = _FLOAT_RE.match(s)
    return float(m.group(1)) if m else 0.0


def parse_duration(v: Any) -> float:
    """
    Horas a partir de un número (ya en horas) o de un texto tipo "2h 30m".
    Si no hay tokens h/m se intenta leer el texto como número; si no, 0.
    """
    if is_blank(v) or isinstance(v, bool):
        return 0.0
    if isinstance(v, (int, float)):
        return float(v)

    s = str(v).lower()
    total = 0.0
    h = _HOURS_RE.search(s)
    m = _MINUTES_RE.search(s)
    if h:
        total += int(h.group(1))
    if m:
        total += int(m.group(1)) / 60
    if total == 0:
        return _leading_float(s)
    return total


def format_date(v: Any) -> str:
    # datetime/date/Timestamp -> "YYYY-MM-DD"; cualquier otra cosa se deja como texto
    if is_blank(v):
        return ""
    if hasattr(v, "year") and hasattr(v, "month") and hasattr(v, "day"):
        try:
            return f"{int(v.year):04d}-{int(v.month):02d}-{int(v.day):02d}"
        except (TypeError, ValueError):
            pass
    return str(v).strip()


_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def try_parse_date(s: Any) -> Optional[date]:
    """Fecha de calendario o None. Formatos latinos: día primero salvo ISO."""
    txt = as_text(s)
    if not txt:
        return None

    iso = re.match(r"^\d{4}[./-]\d{1,2}[./-]\d{1,2}", txt)
    # dos defaults distintos: si algún campo sale del default, la fecha está incompleta
    try:
        a = dtparser.parse(txt, dayfirst=not iso, default=_DATE_DEFAULTS[0]).date()
        b = dtparser.parse(txt, dayfirst=not iso, default=_DATE_DEFAULTS[1]).date()
    except (ValueError, OverflowError):
        logger.debug("Fecha no reconocida: %r", txt)
        return None
    if a != b:
        logger.debug("Fecha incompleta: %r", txt)
        return None
    return a
