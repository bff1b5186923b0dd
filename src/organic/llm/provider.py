"""Language model providers used by the neural invoker.

A provider turns a prompt into reply text. :class:`PromptContext` tells it
which task is asking and which output fields the reply has to carry, so a
provider can ask its backend for structured output when there are any.
"""

from __future__ import annotations

import json
import logging
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptContext:
    """Who is asking, and which fields the reply must contain."""

    agent_name: str
    task_name: str
    output_contract: Mapping[str, str] = field(default_factory=dict)

    @property
    def expects_structure(self) -> bool:
        return bool(self.output_contract)

    def describe_fields(self) -> str:
        return ", ".join(f"{key} ({value})" for key, value in self.output_contract.items())


class LLMProvider(Protocol):
    """Interface for language model providers."""

    def generate(self, prompt: str, context: PromptContext) -> str:  # pragma: no cover - interface
        """Return the model's reply to ``prompt``."""


class ConsoleEchoProvider:
    """Lets an operator play the model: shows the prompt and reads the reply.

    The reply is read line by line until an empty line or end of input.
    ``reader`` and ``console`` default to :func:`input` and a stdout console.
    """

    def __init__(
        self,
        *,
        console: Optional[Console] = None,
        reader: Optional[Callable[[], str]] = None,
    ) -> None:
        self.console = console or Console()
        self.reader = reader or input

    def generate(self, prompt: str, context: PromptContext) -> str:
        self.console.print(Panel(Text(prompt), title=f"{context.agent_name} / {context.task_name}", expand=False))
        if context.expects_structure:
            self.console.print(f"Reply with a JSON object containing: {context.describe_fields()}", markup=False)
        else:
            self.console.print("Reply with free text.")
        self.console.print("Finish with an empty line.")
        return "\n".join(self._read_reply())

    def _read_reply(self) -> Iterable[str]:
        while True:
            try:
                line = self.reader()
            except EOFError:
                return
            if not line:
                return
            yield line


class StaticResponseProvider:
    """Replays canned replies in order and records every prompt it saw."""

    def __init__(self, responses: Iterable[str]):
        self._responses = iter(responses)
        self._lock = threading.Lock()
        self.prompts: List[str] = []
        self.contexts: List[PromptContext] = []

    def generate(self, prompt: str, context: PromptContext) -> str:
        with self._lock:
            self.prompts.append(prompt)
            self.contexts.append(context)
            reply = next(self._responses, None)
        if reply is None:
            raise ProviderError(f"No canned reply left for task '{context.task_name}'")
        return reply


class OllamaProvider:
    """Talks to a local Ollama server through ``POST /api/generate``.

    Tasks with a non-empty output contract are sent with ``format: json`` so
    the model is constrained to emit a JSON object.
    """

    def __init__(
        self,
        model: str,
        *,
        host: str = "http://localhost:11434",
        options: Optional[Dict[str, Any]] = None,
        system_prompt: Optional[str] = None,
        timeout: float = 120.0,
    ) -> None:
        self.model = model
        self.endpoint = host.rstrip("/") + "/api/generate"
        self.options = dict(options or {})
        self.system_prompt = system_prompt
        self.timeout = timeout

    def build_payload(self, prompt: str, context: PromptContext) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"model": self.model, "prompt": prompt, "stream": False}
        if self.options:
            payload["options"] = self.options
        if context.expects_structure:
            payload["format"] = "json"
        if self.system_prompt:
            payload["system"] = self.system_prompt.format(agent=context.agent_name, task=context.task_name)
        return payload

    def generate(self, prompt: str, context: PromptContext) -> str:
        payload = self.build_payload(prompt, context)
        logger.debug(
            "Calling Ollama",
            extra={"task": context.task_name, "model": self.model, "json_format": "format" in payload},
        )
        request = urllib.request.Request(
            self.endpoint,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                data = json.loads(response.read().decode("utf-8"))
        except (urllib.error.URLError, TimeoutError) as exc:
            raise ProviderError(f"Ollama at {self.endpoint} is unreachable: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ProviderError(f"Ollama returned invalid JSON for task '{context.task_name}'") from exc
        return self._reply_text(data, context)

    def _reply_text(self, data: Any, context: PromptContext) -> str:
        if not isinstance(data, Mapping):
            raise ProviderError(f"Ollama returned an unexpected payload for task '{context.task_name}'")
        if "error" in data:
            raise ProviderError(f"Ollama failed task '{context.task_name}': {data['error']}")
        reply = data.get("response")
        if not isinstance(reply, str):
            raise ProviderError(f"Ollama reply for task '{context.task_name}' has no response text")
        return reply.strip()
