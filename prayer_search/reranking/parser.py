"""
Strict parsing of model output.

The model is asked for a single JSON value. Some models still wrap it in
prose or code fences, so the parser accepts either the whole text as JSON or
the first *balanced* object/array in it (string-aware, so braces inside
reasons do not confuse it). Whatever is found must then validate against the
schema; anything else is an AIResponseError.
"""

import json
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..exceptions import AIResponseError

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}


class CandidateAnalysis(BaseModel):
    """AI judgment for one candidate"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    index: int
    relevance_score: float = Field(alias="relevanceScore", ge=0.0, le=10.0)
    reason: str = ""
    semantic_matches: List[str] = Field(default_factory=list, alias="semanticMatches")
    confidence: float = Field(ge=0.0, le=1.0)


class AnalysisResponse(BaseModel):
    """Top-level rerank payload"""
    analyses: List[CandidateAnalysis]


_SUGGESTIONS = TypeAdapter(List[str])


def find_balanced(text: str, opener: str = "{") -> Optional[str]:
    """
    Return the first balanced JSON object (or array) substring, or None.

    Examples:
        >>> find_balanced('Sure! {"a": {"b": "}"}} trailing')
        '{"a": {"b": "}"}}'
        >>> find_balanced("no json here") is None
        True
    """
    closer = _CLOSERS[opener]
    start = text.find(opener)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            char = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        # Unbalanced from this opener, try the next one
        start = text.find(opener, start + 1)
    return None


def _load_json(text: str, opener: str):
    stripped = text.strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    fragment = find_balanced(stripped, opener)
    if fragment is None:
        raise AIResponseError("No JSON found in AI response", raw_response=text)
    try:
        return json.loads(fragment)
    except json.JSONDecodeError as e:
        raise AIResponseError(f"AI response is not valid JSON: {e}", raw_response=text) from e


def parse_analyses(text: str) -> List[CandidateAnalysis]:
    """
    Parse a rerank response into validated analyses.

    Raises:
        AIResponseError: no JSON object, invalid JSON, or schema mismatch
    """
    payload = _load_json(text, "{")
    try:
        response = AnalysisResponse.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"Rejected AI payload: {payload!r}")
        raise AIResponseError(
            f"AI response does not match schema ({e.error_count()} errors)",
            raw_response=text,
        ) from e
    return response.analyses


def parse_suggestions(text: str) -> List[str]:
    """
    Parse a bare JSON array of suggestion strings.

    Raises:
        AIResponseError: no JSON array, invalid JSON, or non-string items
    """
    payload = _load_json(text, "[")
    try:
        return _SUGGESTIONS.validate_python(payload)
    except ValidationError as e:
        raise AIResponseError("AI suggestions are not a list of strings", raw_response=text) from e
