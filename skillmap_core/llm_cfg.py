# skillmap_core/llm_cfg.py
from __future__ import annotations
import os, json, logging, pathlib
from dataclasses import dataclass
from typing import Mapping, Optional, Union
from openai import AsyncAzureOpenAI, AsyncOpenAI

from .config import OPENAI_MODEL

log = logging.getLogger(__name__)

# load_config() keys -> settings fields
_CFG_KEYS = {
    "OPENAI_API_KEY": "api_key",
    "AZURE_OPENAI_API_KEY": "api_key",
    "OPENAI_MODEL": "model",
    "AZURE_OPENAI_DEPLOYMENT": "model",
    "AZURE_OPENAI_ENDPOINT": "endpoint",
    "AZURE_OPENAI_API_VERSION": "api_version",
}
_FIELDS = ("api_key", "model", "endpoint", "api_version")

@dataclass(frozen=True)
class LLMSettings:
    api_key: str
    model: str
    endpoint: str = ""
    api_version: str = ""

    @property
    def is_azure(self) -> bool:
        return bool(self.endpoint)

def _from_env() -> dict[str, str]:
    if os.getenv("AZURE_OPENAI_API_KEY"):
        return {
            "api_key":    os.getenv("AZURE_OPENAI_API_KEY", ""),
            "endpoint":   os.getenv("AZURE_OPENAI_ENDPOINT", ""),
            "api_version":os.getenv("AZURE_OPENAI_API_VERSION", ""),
            "model":      os.getenv("AZURE_OPENAI_DEPLOYMENT", ""),
        }
    return {"api_key": os.getenv("OPENAI_API_KEY", ""), "model": OPENAI_MODEL}

def _from_json(path: str = ".openai_config.json") -> dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists(): return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return {k: str(j.get(k, "")) for k in _FIELDS if j.get(k)}

def settings(cfg: Optional[Mapping[str, str]] = None) -> Optional[LLMSettings]:
    """Resolve the locally held credential; ``None`` when no key is configured."""
    merged = _from_json()
    for k, v in _from_env().items():
        if v: merged[k] = v
    cfg = dict(cfg or {})
    # same precedence as _from_env: an Azure key selects the Azure block
    if cfg.get("AZURE_OPENAI_API_KEY"):
        skip = ("OPENAI_API_KEY", "OPENAI_MODEL")
    else:
        skip = ("AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_VERSION", "AZURE_OPENAI_DEPLOYMENT")
    for k, v in cfg.items():
        field = _CFG_KEYS.get(k, k)
        if v and k not in skip and field in _FIELDS: merged[field] = str(v)
    if not merged.get("api_key"):
        return None
    if merged.get("endpoint") and not merged.get("api_version"):
        log.warning("Azure OpenAI endpoint configured without AZURE_OPENAI_API_VERSION; generative suggestions disabled")
        return None
    return LLMSettings(
        api_key=merged["api_key"],
        model=merged.get("model") or OPENAI_MODEL,
        endpoint=merged.get("endpoint", ""),
        api_version=merged.get("api_version", ""),
    )

def client(s: LLMSettings) -> Union[AsyncOpenAI, AsyncAzureOpenAI]:
    if s.is_azure:
        return AsyncAzureOpenAI(azure_endpoint=s.endpoint, api_key=s.api_key, api_version=s.api_version)
    return AsyncOpenAI(api_key=s.api_key)
