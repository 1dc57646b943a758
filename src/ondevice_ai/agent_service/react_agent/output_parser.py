# tolerant parser for Thought / Action / Final Answer LLM output

import json
import re
from typing import Any, Optional

from ondevice_ai.agent_service.common.types.agent_outputs import (
    AgentAction,
    Fallback,
    NeedsRetry,
    ParseOutcome,
    Parsed,
    ParsedResponse,
)
from ondevice_ai.common.exceptions import ParseError

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*$", re.MULTILINE)
_FINAL_RE = re.compile(r"final\s*answer\s*:", re.IGNORECASE)
_THOUGHT_RE = re.compile(r"thought\s*:", re.IGNORECASE)
_ACTION_RE = re.compile(r"(?<![a-z_])action\s*:", re.IGNORECASE)
_ACTION_INPUT_RE = re.compile(r"action\s*input\s*:", re.IGNORECASE)
_OBSERVATION_RE = re.compile(r"^\s*observation\s*:", re.IGNORECASE | re.MULTILINE)

_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

# keys accepted when the whole response is a JSON object instead of marker lines
_FINAL_KEYS = ("final_answer", "finalAnswer", "final answer", "answer")
_TOOL_KEYS = ("tool", "tool_name", "name")
_ARGS_KEYS = ("args", "arguments", "input", "parameters")

def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()

def extract_json_object(text: str) -> Optional[str]:
    """
    First balanced {...} block in text, honouring quoted strings. None if there is no complete object.
    """
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    quote: Optional[str] = None
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in ("\"", "'"):
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None

def loads_lenient(raw: str) -> Any:
    """
    json.loads with a second pass that repairs common LLM mistakes:
    single quotes, unquoted keys and trailing commas.
    Raises ParseError if both passes fail.
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    fixed = raw
    if "\"" not in fixed:
        fixed = fixed.replace("'", "\"")
    fixed = _UNQUOTED_KEY_RE.sub(r'\1"\2":', fixed)
    fixed = _TRAILING_COMMA_RE.sub(r"\1", fixed)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e.msg}") from e

def _first_value(obj: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in obj and obj[key] is not None:
            return obj[key]
    return None

def _action_from_object(obj: Any) -> AgentAction:
    if not isinstance(obj, dict):
        raise ParseError("Action must be a JSON object")
    tool = _first_value(obj, _TOOL_KEYS)
    if not isinstance(tool, str) or not tool.strip():
        raise ParseError("Action is missing the 'tool' field")
    return AgentAction(tool=tool.strip(), args=_first_value(obj, _ARGS_KEYS))

class ReActOutputParser():
    """
    Turns raw LLM text into a tagged outcome: Parsed | NeedsRetry | Fallback.
    - A final answer takes priority over any action in the same response.
    - Only the first action is honoured.
    - Anything after a self-written "Observation:" line is ignored.
    - A response with only a thought is valid.
    - A JSON-object response may be wrapped in prose or a code fence.
    """

    def parse(self, raw: str, attempt: int = 0, retry_attempts: int = 0) -> ParseOutcome:
        """
        `attempt` is 0 for the first generation of an iteration; once `attempt >= retry_attempts`
        a failure becomes Fallback instead of NeedsRetry.
        """
        try:
            return Parsed(response=self.parse_response(raw))
        except ParseError as e:
            if attempt < retry_attempts:
                return NeedsRetry(reason=str(e), raw=raw or "")
            return Fallback(reason=str(e), raw=raw or "")

    def parse_response(self, raw: str) -> ParsedResponse:
        text = strip_code_fences(raw or "")
        if not text:
            raise ParseError("Empty response")

        if text.startswith("{"):
            response = self._parse_json_response(text)
            if response is not None:
                return response

        text = self._drop_hallucinated_observation(text)

        final_match = _FINAL_RE.search(text)
        if final_match:
            answer = strip_code_fences(text[final_match.end():])
            answer = self._unwrap_json_answer(answer)
            if not answer:
                raise ParseError("Final Answer marker without an answer")
            return ParsedResponse(
                thought=self._extract_thought(text[:final_match.start()]),
                final_answer=answer,
            )

        action_match = _ACTION_RE.search(text)
        thought = self._extract_thought(text[:action_match.start()] if action_match else text)
        if action_match:
            action = self._parse_action(text[action_match.end():])
            return ParsedResponse(thought=thought, action=action)

        # bare prose without any marker is not a valid turn
        if thought and _THOUGHT_RE.search(text):
            return ParsedResponse(thought=thought)

        # JSON object surrounded by prose
        response = self._parse_json_response(text)
        if response is not None:
            return response
        raise ParseError("No Thought, Action or Final Answer found")

    # =====================================================================
    # Helpers
    # =====================================================================

    def _drop_hallucinated_observation(self, text: str) -> str:
        match = _OBSERVATION_RE.search(text)
        if match and match.start() > 0:
            return text[:match.start()].strip()
        return text

    def _extract_thought(self, segment: str) -> str:
        match = _THOUGHT_RE.search(segment)
        if match:
            return segment[match.end():].strip()
        # prose before the first marker counts as the thought
        return segment.strip()

    def _parse_action(self, segment: str) -> AgentAction:
        segment = segment.strip()
        first_line = segment.splitlines()[0].strip() if segment else ""

        # Action: tool_name / Action Input: ... style
        if first_line and not first_line.startswith("{"):
            tool = first_line.strip("`\"' ")
            if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_\-]*", tool):
                raise ParseError(f"Unrecognised action: {first_line[:80]}")
            input_match = _ACTION_INPUT_RE.search(segment)
            args: Any = None
            if input_match:
                raw_input = segment[input_match.end():].strip()
                block = extract_json_object(raw_input) if raw_input.startswith("{") else None
                args = loads_lenient(block) if block else (raw_input.splitlines()[0].strip() if raw_input else None)
            return AgentAction(tool=tool, args=args)

        block = extract_json_object(segment)
        if block is None:
            raise ParseError("Action JSON is incomplete")
        return _action_from_object(loads_lenient(block))

    def _unwrap_json_answer(self, answer: str) -> str:
        if answer.startswith("{"):
            try:
                obj = loads_lenient(answer)
            except ParseError:
                return answer
            if isinstance(obj, dict):
                value = _first_value(obj, _FINAL_KEYS)
                if isinstance(value, str):
                    return value.strip()
        return answer.strip()

    def _parse_json_response(self, text: str) -> Optional[ParsedResponse]:
        """Whole response is a JSON object, e.g. {"thought": ..., "final_answer": ...}. None if it isn't one."""
        block = extract_json_object(text)
        if block is None:
            return None
        try:
            obj = loads_lenient(block)
        except ParseError:
            return None
        if not isinstance(obj, dict):
            return None

        thought = str(obj.get("thought") or "").strip()
        final_answer = _first_value(obj, _FINAL_KEYS)
        if final_answer is not None:
            return ParsedResponse(thought=thought, final_answer=str(final_answer).strip())

        action = obj.get("action")
        if isinstance(action, dict):
            return ParsedResponse(thought=thought, action=_action_from_object(action))
        # {"tool": ..., "action": "<what it does>", "args": ...}: the string action is only a description
        if _first_value(obj, _TOOL_KEYS) is not None:
            return ParsedResponse(thought=thought, action=_action_from_object(obj))
        if isinstance(action, str) and action.strip():
            return ParsedResponse(
                thought=thought,
                action=AgentAction(tool=action.strip(), args=_first_value(obj, _ARGS_KEYS)),
            )
        if thought:
            return ParsedResponse(thought=thought)
        return None
