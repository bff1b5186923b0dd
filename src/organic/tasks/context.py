"""Helper surface available to symbolic task bodies."""

from __future__ import annotations

import os
import re
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional

from ..errors import SecurityViolationError

ToolInvoker = Callable[[str, Mapping[str, Any]], Any]

_EMAIL_RE = re.compile(r"^[\w+\-.]+@[a-z\d\-]+(\.[a-z\d\-]+)*\.[a-z]+$", re.IGNORECASE)
_URL_RE = re.compile(r"^https?://\S+$")
_PHONE_RE = re.compile(r"^\+\d{10,15}$")


class ExecutionContext:
    """Created fresh for every symbolic invocation and discarded afterwards.

    The context exposes validation, environment lookup and formatting helpers
    plus tool access. It deliberately offers no way to run arbitrary shell
    commands; see :meth:`run_command`.
    """

    def __init__(
        self,
        task_name: str,
        inputs: Mapping[str, Any],
        tool_invoker: Optional[ToolInvoker] = None,
    ) -> None:
        self.task_name = task_name
        self.inputs: Mapping[str, Any] = MappingProxyType(dict(inputs))
        self._tool_invoker = tool_invoker

    # validation -----------------------------------------------------------

    def validate_email(self, value: Any) -> Optional[str]:
        if isinstance(value, str) and _EMAIL_RE.match(value.strip()):
            return None
        return "Error: Invalid email format"

    def validate_url(self, value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value.strip():
            return "Error: URL cannot be empty"
        if _URL_RE.match(value.strip()):
            return None
        return "Error: Invalid URL. Must start with http:// or https://"

    def validate_phone(self, value: Any) -> Optional[str]:
        if isinstance(value, str) and _PHONE_RE.match(value.strip()):
            return None
        return "Error: Invalid phone number format. Use E.164 format (e.g., +1234567890)"

    # environment ----------------------------------------------------------

    def env_get(self, *names: str, default: Optional[str] = None) -> Optional[str]:
        for name in names:
            value = os.environ.get(name)
            if value is not None:
                return value
        return default

    def env_required(self, *names: str) -> Optional[str]:
        missing = [name for name in names if os.environ.get(name) is None]
        if missing:
            return f"Error: Missing required environment variables: {', '.join(missing)}"
        return None

    # formatting -----------------------------------------------------------

    def truncate(self, text: Optional[str], max_length: int = 2000, suffix: str = "...") -> str:
        if text is None:
            return ""
        if len(text) <= max_length:
            return text
        return text[:max_length] + suffix

    def parse_csv(self, text: Optional[str]) -> List[str]:
        if not text:
            return []
        return [piece.strip() for piece in text.split(",") if piece.strip()]

    def error(self, message: str) -> str:
        return f"Error: {message}"

    def success(self, message: str) -> str:
        return message

    # tools ----------------------------------------------------------------

    def invoke_tool(self, name: str, args: Optional[Mapping[str, Any]] = None) -> Any:
        if self._tool_invoker is None:
            return {"error": f"No tools are available to task '{self.task_name}'"}
        return self._tool_invoker(name, dict(args or {}))

    def run_command(self, *args: Any, **kwargs: Any) -> Any:
        raise SecurityViolationError(
            "run_command",
            "run_command has been removed for security reasons. "
            "Use invoke_tool('command', {'argv': [...]}) with an allow-listed executable instead.",
        )
