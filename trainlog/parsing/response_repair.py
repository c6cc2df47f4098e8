"""Repair pipeline for untrusted model output.

Model responses that should contain JSON frequently arrive wrapped in prose or
markdown fences, truncated mid-object, padded with stray closing braces, or
re-encoded as a JSON string (sometimes only for nested properties). Each stage
here handles one of those failure classes and can be used on its own;
``parse_trusted_json`` chains them.
"""

import json
import re
from typing import Any, TypeAlias

from loguru import logger

from trainlog.core.errors import MalformedResponseError

Json: TypeAlias = None | bool | int | float | str | list[Any] | dict[str, Any]

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_REPEATED_CLOSING_BRACES = re.compile(r"}{2,}")

_CLOSER_FOR = {"{": "}", "[": "]"}
_OPENER_FOR = {"}": "{", "]": "["}


def strip_non_json(text: str) -> str:
    """Keep only the span from the first ``{``/``[`` to the last ``}``/``]``.

    Returns the input unchanged when no opening or closing bracket exists, or
    when the last closer precedes the first opener.
    """
    trimmed = text.strip()
    openers = [index for index in (trimmed.find("{"), trimmed.find("[")) if index != -1]
    if not openers:
        return text

    start = min(openers)
    end = max(trimmed.rfind("}"), trimmed.rfind("]"))
    if end == -1 or end < start:
        return text

    return trimmed[start : end + 1]


def clean_response(text: str) -> str:
    """Remove markdown code fences, then re-run bracket extraction."""
    without_fences = _CODE_FENCE.sub("", text).strip()
    return strip_non_json(without_fences)


def _try_parse(text: str) -> bool:
    try:
        json.loads(text)
    except json.JSONDecodeError:
        return False
    return True


def _rebalance(text: str) -> str:
    """Drop unmatched closers and append closers for unterminated openers.

    Brackets inside string literals are ignored. A closer that matches an
    opener deeper in the stack closes the intervening openers first.
    """
    stack: list[str] = []
    output: list[str] = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            output.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
            output.append(char)
        elif char in _CLOSER_FOR:
            stack.append(char)
            output.append(char)
        elif char in _OPENER_FOR:
            opener = _OPENER_FOR[char]
            if opener not in stack:
                # Excess closer with nothing to close
                continue
            while stack[-1] != opener:
                output.append(_CLOSER_FOR[stack.pop()])
            stack.pop()
            output.append(char)
        else:
            output.append(char)

    if in_string:
        output.append('"')
    output.extend(_CLOSER_FOR[opener] for opener in reversed(stack))
    return "".join(output)


def _collapse_and_trim(text: str) -> str:
    """Collapse runs of closing braces, then trim or pad to balance counts."""
    fixed = _REPEATED_CLOSING_BRACES.sub("}", text)

    excess = fixed.count("}") - fixed.count("{")
    while excess > 0:
        last = fixed.rfind("}")
        fixed = fixed[:last] + fixed[last + 1 :]
        excess -= 1

    missing_brackets = fixed.count("[") - fixed.count("]")
    if missing_brackets > 0:
        fixed += "]" * missing_brackets
    missing_braces = fixed.count("{") - fixed.count("}")
    if missing_braces > 0:
        fixed += "}" * missing_braces
    return fixed


def fix_malformed_json(text: str) -> str:
    """Return a parseable version of ``text``.

    Repairs are attempted in order, re-parsing after each: trailing commas,
    structural rebalancing (drop unmatched closers, close unterminated
    openers), then duplicate-brace collapsing with count balancing.

    Raises:
        MalformedResponseError: If no repair yields valid JSON
    """
    if _try_parse(text):
        return text

    logger.debug("JSON parse failed, attempting repairs", preview=text[:200])

    fixed = _TRAILING_COMMA.sub(r"\1", text.strip())
    if _try_parse(fixed):
        logger.debug("Repaired JSON by removing trailing commas")
        return fixed

    rebalanced = _rebalance(fixed)
    if _try_parse(rebalanced):
        logger.debug(
            "Repaired JSON by rebalancing brackets",
            braces_before=(fixed.count("{"), fixed.count("}")),
            braces_after=(rebalanced.count("{"), rebalanced.count("}")),
        )
        return rebalanced

    collapsed = _collapse_and_trim(fixed)
    if _try_parse(collapsed):
        logger.debug("Repaired JSON by collapsing repeated closing braces")
        return collapsed

    raise MalformedResponseError(text)


def fix_double_encoded_json(text: str) -> str:
    """Unwrap one level of quoting when the whole payload is a JSON string of JSON."""
    trimmed = text.strip()
    if len(trimmed) < 2 or not (trimmed.startswith('"') and trimmed.endswith('"')):
        return text

    try:
        decoded = json.loads(trimmed)
    except json.JSONDecodeError:
        return text

    if isinstance(decoded, str) and decoded.strip().startswith(("{", "[")):
        logger.warning("Unwrapped double-encoded JSON payload")
        return decoded.strip()
    return text


def _decode_embedded(text: str) -> Json:
    stripped = text.strip()
    if not stripped.startswith(("{", "[")):
        return text
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError:
        return text
    return fix_double_encoded_properties(parsed)


def fix_double_encoded_properties(value: Json) -> Json:
    """Recursively replace JSON-looking string values with their parsed form.

    Strings that start with ``{``/``[`` but do not parse are left as-is, so a
    second pass over the output changes nothing.
    """
    if isinstance(value, str):
        return _decode_embedded(value)
    if isinstance(value, list):
        return [fix_double_encoded_properties(item) for item in value]
    if isinstance(value, dict):
        return {key: fix_double_encoded_properties(item) for key, item in value.items()}
    return value


def parse_trusted_json(raw: str) -> Json:
    """Parse model output into a JSON value, repairing it where possible.

    Args:
        raw: Raw model response text

    Returns:
        Parsed JSON value with nested double-encoding removed

    Raises:
        MalformedResponseError: If all repair stages are exhausted
    """
    # Bracket extraction would strip the outer quotes of a quoted payload
    text = fix_double_encoded_json(raw)
    text = strip_non_json(text)
    text = clean_response(text)
    text = fix_malformed_json(text)
    text = fix_double_encoded_json(text)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(raw) from e
    return fix_double_encoded_properties(parsed)
