"""
JSON utilities for LLM response parsing.

LLM outputs are frequently wrapped in markdown fences, surrounded by prose or
slightly malformed (single quotes, trailing commas, unquoted keys). The
helpers here try strict ``json.loads`` first and fall back to the
json-repair library.
"""

import json
import re
from typing import Any, Dict, List

from json_repair import repair_json


def parse_llm_json(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from an LLM response.

    Raises:
        ValueError: If no object can be extracted or repaired

    Example:
        >>> parse_llm_json('```json\\n{"key": "value"}\\n```')
        {'key': 'value'}
        >>> parse_llm_json("{'name': 'test',}")
        {'name': 'test'}
    """
    json_str = _extract_span(_strip_markdown_blocks(_require_text(text)), "{", "}")
    parsed = _loads_or_repair(json_str, text)

    if isinstance(parsed, dict):
        return parsed
    # LLM sometimes wraps the object in brackets: [{...}]
    if isinstance(parsed, list) and len(parsed) == 1 and isinstance(parsed[0], dict):
        return parsed[0]
    raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")


def parse_llm_json_array(text: str) -> List[Any]:
    """
    Parse a JSON array from an LLM response.

    Used for short list answers such as email address guesses.

    Raises:
        ValueError: If no array can be extracted or repaired
    """
    json_str = _extract_span(_strip_markdown_blocks(_require_text(text)), "[", "]")
    parsed = _loads_or_repair(json_str, text)

    if isinstance(parsed, list):
        return parsed
    raise ValueError(f"Expected a JSON array, got {type(parsed).__name__}")


def _require_text(text: str) -> str:
    if not text or not text.strip():
        raise ValueError("Empty input: no JSON content to parse")
    return text.strip()


def _loads_or_repair(json_str: str, original: str) -> Any:
    try:
        return json.loads(json_str)
    except json.JSONDecodeError:
        pass  # Fall through to repair

    try:
        repaired = repair_json(json_str, return_objects=True)
    except Exception as e:
        raise ValueError(
            f"Failed to parse or repair JSON: {e}\n"
            f"Original text (first 500 chars): {original[:500]}"
        ) from e

    # Older json-repair releases may hand back a string
    if isinstance(repaired, str):
        try:
            return json.loads(repaired)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Failed to parse repaired JSON: {e}\n"
                f"Original text (first 500 chars): {original[:500]}"
            ) from e
    return repaired


def _strip_markdown_blocks(text: str) -> str:
    """Remove ```json / ``` wrappers from text."""
    result = text

    if result.startswith("```json"):
        result = result[7:]
    elif result.startswith("```"):
        result = result[3:]

    if result.endswith("```"):
        result = result[:-3]

    return result.strip()


def _extract_span(text: str, opener: str, closer: str) -> str:
    """
    Extract the outermost ``opener ... closer`` span from text.

    Raises:
        ValueError: If no such span is found
    """
    text = text.strip()
    if text.startswith(opener):
        return text

    match = re.search(
        re.escape(opener) + r".*" + re.escape(closer), text, re.DOTALL
    )
    if match:
        return match.group(0)

    raise ValueError(f"No JSON {'object' if opener == '{' else 'array'} found in text: {text[:200]}")
