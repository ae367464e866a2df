from __future__ import annotations
import json, logging, time
from typing import Any, List, Mapping, Optional

from .llm_cfg import LLMSettings, client as llm_client

log = logging.getLogger(__name__)

_SYSTEM = "You are an AI career coach. Answer with a short numbered list only."


def _block(value: Any, empty: str) -> str:
    if not value:
        return empty
    return json.dumps(value, indent=2, ensure_ascii=False, default=lambda o: getattr(o, "__dict__", str(o)))


def _bias_lines(biases: Optional[List[Mapping[str, Any]]]) -> str:
    if not biases:
        return "No cognitive analysis available"
    return "\n".join(f"- {b.get('type', 'bias')}: {b.get('description', '')}" for b in biases)


def build_suggestions_prompt(
    resume_data: Any = None,
    cognitive_biases: Optional[List[Mapping[str, Any]]] = None,
    session_summary: Any = None,
) -> str:
    return (
        "You are an AI career coach analyzing a user's skill assessment results. "
        "Based on the following information, provide personalized career development suggestions.\n\n"
        f"USER RESUME DATA:\n{_block(resume_data, 'No resume data available')}\n\n"
        f"COGNITIVE ANALYSIS:\n{_bias_lines(cognitive_biases)}\n\n"
        f"SESSION SUMMARY:\n{_block(session_summary, 'No session summary available')}\n\n"
        "Please provide 3-5 specific, actionable suggestions for career development. Focus on:\n"
        "1. Skill gaps that need immediate attention\n"
        "2. Learning resources and courses\n"
        "3. Career progression opportunities\n"
        "4. Networking and professional development\n\n"
        "Format your response as a numbered list with clear, concise recommendations."
    )


async def generate_suggestions(s: LLMSettings, prompt: str) -> str:
    t0 = time.time()
    async with llm_client(s) as cli:
        resp = await cli.chat.completions.create(
            model=s.model,
            messages=[{"role": "system", "content": _SYSTEM}, {"role": "user", "content": prompt}],
            temperature=0.4, max_tokens=600,
        )
    text = (resp.choices[0].message.content or "").strip()
    log.info("generated suggestions backend=%s chars=%d rt_ms=%d",
             "azure" if s.is_azure else "openai", len(text), int((time.time() - t0) * 1000))
    return text
