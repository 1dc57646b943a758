# tool capability interface consumed by the ReAct agent

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from ondevice_ai.common.exceptions import ToolError

ToolInvoker = Callable[[str], Awaitable[str]]

@dataclass(frozen=True)
class ToolDescriptor:
    """
    A named capability the agent may call mid-reasoning.
    - `parameters` follows the function-calling declaration shape: {"type": "object", "properties": {...}, "required": [...]}
    - `invoke` takes the raw argument string from the parsed action and returns an observation, or raises ToolError.
    """
    name: str
    description: str
    invoke: ToolInvoker = field(repr=False, compare=False)
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}, "required": []})
    category: str = "utility"
    requires_permission: bool = False
    permission_key: Optional[str] = None

    @property
    def required_params(self) -> list[str]:
        return list(self.parameters.get("required", []))

    @property
    def primary_param(self) -> Optional[str]:
        """Parameter that a plain-text argument is mapped to: first required one, else first declared one."""
        required = self.required_params
        if required:
            return required[0]
        properties = self.parameters.get("properties", {})
        return next(iter(properties), None)

def parse_tool_args(argument: str, primary_param: Optional[str] = None) -> dict[str, Any]:
    """
    Decode a tool argument string.
    - A JSON object is used as-is.
    - Anything else (plain text, JSON scalar) is bound to `primary_param`.
    - Empty input yields {}.
    """
    text = (argument or "").strip()
    if not text:
        return {}
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        decoded = text
    if isinstance(decoded, dict):
        return decoded
    if primary_param is None:
        return {}
    return {primary_param: decoded if isinstance(decoded, str) else str(decoded)}

def require_arg(args: dict[str, Any], key: str, tool_name: str) -> Any:
    value = args.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ToolError(f"{key} parameter is required for {tool_name}")
    return value
