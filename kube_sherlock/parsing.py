"""Extraction of structured decisions from free-form model output.

Models are asked to reply with a bare JSON object, but in practice they wrap
it in markdown fences or surround it with prose. ``ResponseParser`` tries an
ordered list of strategies and stops at the first one that yields a valid
decision; when none does, the text itself becomes the answer.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field, replace

logger = logging.getLogger(__name__)

ACTION_ANSWER = "answer"
ACTION_USE_TOOL = "use_tool"

RAW_TEXT_STRATEGY = "raw_text"

_FENCE_RE = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class Decision:
    """What the model wants to do next.

    ``strategy`` records which extraction stage produced the decision and is
    ignored when comparing decisions.
    """
    action: str
    response: str = ""
    tool: str = ""
    arguments: Dict[str, Any] = field(default_factory=dict)
    strategy: str = field(default="", compare=False)

    @property
    def uses_tool(self) -> bool:
        return self.action == ACTION_USE_TOOL

    @property
    def degraded(self) -> bool:
        return self.strategy == RAW_TEXT_STRATEGY


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def parse_whole_text(text: str) -> Optional[Any]:
    """Stage 1: the entire reply is JSON."""
    return _loads(text.strip())


def parse_fenced_block(text: str) -> Optional[Any]:
    """Stage 2: JSON inside a ```json fenced block."""
    match = _FENCE_RE.search(text)
    if not match:
        return None
    return _loads(match.group(1).strip())


def parse_outer_braces(text: str) -> Optional[Any]:
    """Stage 3: everything from the first '{' to the last '}'."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return _loads(text[start:end + 1])


JSON_STRATEGIES: Tuple[Tuple[str, Callable[[str], Optional[Any]]], ...] = (
    ("whole_text", parse_whole_text),
    ("fenced_block", parse_fenced_block),
    ("outer_braces", parse_outer_braces),
)


def to_decision(payload: Any) -> Optional[Decision]:
    """Validate a parsed JSON value against the two decision shapes."""
    if not isinstance(payload, dict):
        return None
    action = payload.get("action")
    if action == ACTION_ANSWER:
        response = payload.get("response")
        if not isinstance(response, str):
            return None
        return Decision(action=ACTION_ANSWER, response=response)
    if action == ACTION_USE_TOOL:
        tool = payload.get("tool")
        arguments = payload.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(tool, str) or not tool or not isinstance(arguments, dict):
            return None
        return Decision(action=ACTION_USE_TOOL, tool=tool, arguments=arguments)
    return None


def extract_json(text: str,
                 accept: Callable[[Any], bool] = lambda payload: isinstance(payload, dict),
                 strategies: Sequence[Tuple[str, Callable[[str], Optional[Any]]]] = JSON_STRATEGIES) -> Optional[Any]:
    """Return the first JSON value any strategy finds that ``accept`` approves."""
    for _, strategy in strategies:
        payload = strategy(text)
        if payload is not None and accept(payload):
            return payload
    return None


class ResponseParser:
    """Turns model output into a Decision, never failing."""

    def __init__(self, strategies: Sequence[Tuple[str, Callable[[str], Optional[Any]]]] = JSON_STRATEGIES):
        self.strategies: List[Tuple[str, Callable[[str], Optional[Any]]]] = list(strategies)

    def parse(self, text: str) -> Decision:
        for name, strategy in self.strategies:
            decision = to_decision(strategy(text))
            if decision is not None:
                logger.debug(f"Parsed model decision with strategy '{name}'")
                return replace(decision, strategy=name)

        logger.info("Model reply held no decision object, using it as a direct answer")
        return Decision(action=ACTION_ANSWER, response=text, strategy=RAW_TEXT_STRATEGY)
