from __future__ import annotations
import os, json, pathlib
from dataclasses import dataclass
from typing import Any, Mapping


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


API_BASE: str = "http://localhost:8080/api"
API_TIMEOUT_SEC: float = 30.0

BATCH_SIZE: int = 5
STOP_REASON_EMPTY_PAGE: str = "NO_MORE_QUESTIONS"
DEFAULT_CONFIDENCE: float = 0.5
DEFAULT_SCALE: int = 3

CACHE_TTL_HOURS: float = 24.0

RESUME_BOOST_YEARS: float = 2.0
RESUME_BOOST_HIGH: float = 1.0
RESUME_BOOST_LOW: float = 0.5

GAP_LEVEL_CEILING: int = 4
GAP_TOP_N: int = 5
GAP_DEFAULT_TARGET: int = 4
GAP_ROLE_TARGET: int = 5
GAP_BASICS_TARGET: int = 3
GAP_HIGH_IMPACT: float = 0.7
GAP_MODERATE_IMPACT: float = 0.4

RESOURCE_TOP_N: int = 4
RESOURCE_MIN_RELEVANCE: float = 0.3

OPENAI_MODEL: str = "gpt-4o-mini"

# // env overrides for staging/ops
API_BASE = _env_str("API_BASE", API_BASE)
API_TIMEOUT_SEC = _env_float("API_TIMEOUT_SEC", API_TIMEOUT_SEC)
BATCH_SIZE = _env_int("BATCH_SIZE", BATCH_SIZE)
CACHE_TTL_HOURS = _env_float("CACHE_TTL_HOURS", CACHE_TTL_HOURS)
RESUME_BOOST_YEARS = _env_float("RESUME_BOOST_YEARS", RESUME_BOOST_YEARS)
GAP_TOP_N = _env_int("GAP_TOP_N", GAP_TOP_N)
RESOURCE_TOP_N = _env_int("RESOURCE_TOP_N", RESOURCE_TOP_N)
RESOURCE_MIN_RELEVANCE = _env_float("RESOURCE_MIN_RELEVANCE", RESOURCE_MIN_RELEVANCE)
OPENAI_MODEL = _env_str("OPENAI_MODEL", OPENAI_MODEL)
DEBUG_TRANSITIONS: bool = _env_bool("DEBUG_TRANSITIONS", False)


@dataclass(frozen=True)
class AnalyzerSettings:
    resume_boost_years: float
    gap_top_n: int
    resource_top_n: int
    resource_min_relevance: float

    @staticmethod
    def from_cfg(cfg: Mapping[str, Any] | None) -> "AnalyzerSettings":
        def _cfg_value(name: str, default: Any) -> Any:
            if isinstance(cfg, Mapping) and name in cfg:
                return cfg[name]
            return default

        return AnalyzerSettings(
            resume_boost_years=float(_cfg_value("RESUME_BOOST_YEARS", RESUME_BOOST_YEARS)),
            gap_top_n=int(_cfg_value("GAP_TOP_N", GAP_TOP_N)),
            resource_top_n=int(_cfg_value("RESOURCE_TOP_N", RESOURCE_TOP_N)),
            resource_min_relevance=float(_cfg_value("RESOURCE_MIN_RELEVANCE", RESOURCE_MIN_RELEVANCE)),
        )


def load_config(path: str = "config.json") -> dict:
    """Merge an optional JSON config file with environment overrides."""

    cfg: dict = {}
    p = pathlib.Path(path)
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    for k in ("API_BASE", "OPENAI_API_KEY", "OPENAI_MODEL",
              "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_API_VERSION", "AZURE_OPENAI_DEPLOYMENT"):
        if e.get(k): cfg[k] = e.get(k)
    for k in ("RESUME_BOOST_YEARS", "RESOURCE_MIN_RELEVANCE"):
        if e.get(k): cfg[k] = _env_float(k, 0.0)
    for k in ("GAP_TOP_N", "RESOURCE_TOP_N", "BATCH_SIZE"):
        if e.get(k): cfg[k] = _env_int(k, 0)
    return cfg

