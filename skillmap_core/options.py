from __future__ import annotations
import json, logging
from typing import Any, List, Mapping

log = logging.getLogger(__name__)


def _as_strings(seq: Any) -> List[str]:
    out: List[str] = []
    for o in seq:
        if isinstance(o, str):
            out.append(o)
        elif isinstance(o, Mapping):
            for k in ("text", "label", "option", "value"):
                if isinstance(o.get(k), str) and o[k].strip():
                    out.append(o[k].strip()); break
            else:
                out.append(str(o))
        elif o is not None:
            out.append(str(o))
    return out


def _from_string(raw: str) -> List[str]:
    try:
        decoded = json.loads(raw)
    except ValueError:
        decoded = None
    if isinstance(decoded, list):
        return _as_strings(decoded)
    return [o.strip() for o in raw.split(",") if o.strip()]


def parse_options(raw: Any) -> List[str]:
    """Normalize an option payload (list, JSON string or comma string) to a list of strings."""

    if isinstance(raw, (list, tuple)):
        return _as_strings(raw)
    if isinstance(raw, str) and raw.strip():
        return _from_string(raw.strip())
    if raw not in (None, "", [], ()):
        log.debug("unrecognized option payload %r", type(raw).__name__)
    return []


def question_options(payload: Mapping[str, Any]) -> List[str]:
    for key in ("options", "choices"):
        opts = parse_options(payload.get(key))
        if opts:
            return opts
    return []
