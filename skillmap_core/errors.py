from __future__ import annotations
from typing import Optional


class SkillMapError(Exception):
    """Base class for errors raised by the assessment core."""


class TransportError(SkillMapError):
    """A backend call failed: network error, timeout or non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SuggestionsUnavailable(SkillMapError):
    def __init__(self, message: str = "Unable to load AI suggestions at this time. Please try again later."):
        super().__init__(message)
