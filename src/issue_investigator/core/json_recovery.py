"""Recovery of structured data from free-text model output.

Models are told to answer with JSON only, but frequently wrap it in prose,
markdown fences or reasoning blocks. Every stage that consumes model output
goes through the same three tiers:

1. ``decode_json``: the whole answer is valid JSON
2. ``extract_balanced``: the first balanced ``{...}`` / ``[...]`` substring
   decodes
3. the caller's fixed default

Each tier is a plain function so it can be exercised on its own.
"""

import json
import logging
from typing import Any, Callable, Optional, Tuple, TypeVar

from issue_investigator.exceptions import ModelOutputError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSERS = {"{": "}", "[": "]"}

# Tier labels reported alongside recovered values
TIER_DIRECT = "direct"
TIER_EXTRACTED = "extracted"
TIER_DEFAULT = "default"


def decode_json(text: Optional[str]) -> Any:
    """Tier 1: decode the whole text.

    Raises:
        ModelOutputError: If the text is not valid JSON
    """
    if text is None:
        raise ModelOutputError("Model returned no output")
    try:
        return json.loads(text.strip())
    except (ValueError, RecursionError) as e:
        # RecursionError: nesting deeper than the decoder can follow
        raise ModelOutputError(f"Model output is not valid JSON: {e}", raw_output=text)


def extract_balanced(text: Optional[str], opener: str = "{") -> Optional[str]:
    """
    Tier 2 helper: find the first balanced bracketed substring.

    Brackets inside JSON string literals are ignored, so a value such as
    ``"use {braces}"`` does not end the scan early.

    Args:
        text: Raw model output
        opener: ``"{"`` for objects, ``"["`` for arrays

    Returns:
        The substring from the first ``opener`` to its matching closer, or
        None if there is no opener or it is never closed
    """
    if not text:
        return None
    closer = _CLOSERS[opener]
    start = text.find(opener)
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def decode_extracted(text: Optional[str], opener: str = "{") -> Any:
    """Tier 2: decode the first balanced substring.

    Raises:
        ModelOutputError: If there is no balanced substring or it does not decode
    """
    candidate = extract_balanced(text, opener)
    if candidate is None:
        raise ModelOutputError(f"No balanced {opener}...{_CLOSERS[opener]} block in model output", raw_output=text or "")
    return decode_json(candidate)


def recover_json(
    text: Optional[str],
    opener: str,
    accept: Callable[[Any], Optional[T]],
    default: Callable[[], T],
    label: str = "model output",
    extract_after_reject: bool = True,
) -> Tuple[T, str]:
    """
    Run the three tiers in order.

    ``accept`` converts a decoded value into the wanted type, returning None
    when the value is unusable (wrong shape, failed validation). A rejected
    value moves on to the next tier.

    Args:
        text: Raw model output
        opener: ``"{"`` for objects, ``"["`` for arrays
        accept: Converter from decoded JSON to the result type
        default: Factory for the fixed default
        label: Name used in log messages
        extract_after_reject: When False, a decoded-but-rejected answer goes
            straight to the default instead of tier 2

    Returns:
        Tuple of (value, tier) where tier is one of ``TIER_DIRECT``,
        ``TIER_EXTRACTED`` or ``TIER_DEFAULT``
    """
    try:
        value = accept(decode_json(text))
        if value is not None:
            return value, TIER_DIRECT
        if not extract_after_reject:
            logger.warning(f"Decoded {label} was rejected, using default")
            return default(), TIER_DEFAULT
        logger.warning(f"Decoded {label} was rejected, trying extraction")
    except ModelOutputError as e:
        logger.warning(f"Failed to decode {label}: {e}, trying extraction")

    try:
        value = accept(decode_extracted(text, opener))
        if value is not None:
            return value, TIER_EXTRACTED
    except ModelOutputError as e:
        logger.debug(f"Extraction from {label} failed: {e}")

    logger.warning(f"No usable JSON in {label}, using default")
    logger.debug(f"Raw {label}: {text!r}")
    return default(), TIER_DEFAULT
