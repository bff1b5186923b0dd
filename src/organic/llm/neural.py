"""Neural invocation: run task instructions through a language model."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Optional, Protocol, Sequence, Union

import yaml

from ..tools.base import ToolDescriptor
from .provider import LLMProvider, PromptContext

logger = logging.getLogger(__name__)

RawResult = Union[Mapping[str, Any], str]

_THINK_BLOCK = re.compile(r"\[THINK\].*?\[/THINK\]", re.DOTALL)
_UNCLOSED_THINK = re.compile(r"\[THINK\].*?(?=\{)", re.DOTALL)
_FENCED = re.compile(r"```(?:json|yaml)?\s*\n(.*?)\n```", re.DOTALL)


class NeuralInvoker(Protocol):
    """Executes a neural task and returns a mapping or free text."""

    def invoke(
        self,
        instructions: str,
        inputs: Mapping[str, Any],
        available_tools: Sequence[ToolDescriptor],
        *,
        task_name: str,
        output_contract: Mapping[str, Any],
    ) -> RawResult:  # pragma: no cover - interface
        ...


def build_prompt(
    task_name: str,
    instructions: str,
    inputs: Mapping[str, Any],
    available_tools: Sequence[ToolDescriptor],
    output_contract: Mapping[str, Any],
) -> str:
    lines = [f"# Task: {task_name}", "", "## Instructions", instructions.strip(), ""]
    if inputs:
        lines.append("## Inputs")
        lines.extend(f"- {key}: {json.dumps(value, default=str)}" for key, value in inputs.items())
        lines.append("")
    if available_tools:
        lines.append("## Tools")
        lines.extend(f"- {tool.name}: {tool.description}" for tool in available_tools)
        lines.append("")
    lines.append("## Output Schema")
    if output_contract:
        lines.append("Return a JSON object with exactly these fields:")
        lines.extend(f"- {key} ({value})" for key, value in output_contract.items())
    else:
        lines.append("Return an empty JSON object: {}")
    lines.append("")
    lines.append("## Response Format")
    lines.append("You may reason inside [THINK]...[/THINK] tags.")
    lines.append("After any reasoning, respond only with the JSON object.")
    return "\n".join(lines)


def _strip_reasoning(text: str) -> str:
    cleaned = _THINK_BLOCK.sub("", text)
    cleaned = _UNCLOSED_THINK.sub("", cleaned).strip()
    if cleaned.startswith("[THINK]"):
        cleaned = ""
    return cleaned


def _load_structured(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError:
            return None


def parse_response(text: str, output_contract: Optional[Mapping[str, Any]] = None) -> RawResult:
    """Turn a model reply into a mapping when it carries one, else plain text.

    A parsed mapping is only accepted when it shares a key with the output
    contract, so prose such as ``"Note: done"`` is not mistaken for data.
    """

    cleaned = _strip_reasoning(text)
    candidates = []
    fenced = _FENCED.search(cleaned)
    if fenced:
        candidates.append(fenced.group(1))
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end > start:
        candidates.append(cleaned[start : end + 1])
    candidates.append(cleaned)

    for candidate in candidates:
        parsed = _load_structured(candidate)
        if not isinstance(parsed, Mapping):
            continue
        if output_contract is None or not output_contract or set(parsed) & set(output_contract):
            return {str(key): value for key, value in parsed.items()}
    return cleaned


class LLMNeuralInvoker:
    """Adapts an :class:`LLMProvider` to the neural invocation interface."""

    def __init__(self, provider: LLMProvider, *, agent_name: str = "agent") -> None:
        self.provider = provider
        self.agent_name = agent_name

    def invoke(
        self,
        instructions: str,
        inputs: Mapping[str, Any],
        available_tools: Sequence[ToolDescriptor],
        *,
        task_name: str,
        output_contract: Mapping[str, Any],
    ) -> RawResult:
        prompt = build_prompt(task_name, instructions, inputs, available_tools, output_contract)
        logger.debug(
            "Sending prompt to provider",
            extra={"task": task_name, "prompt_length": len(prompt), "tools": [t.name for t in available_tools]},
        )
        context = PromptContext(
            agent_name=self.agent_name,
            task_name=task_name,
            output_contract={key: str(value) for key, value in output_contract.items()},
        )
        response = self.provider.generate(prompt, context)
        result = parse_response(response, output_contract)
        logger.debug(
            "Provider response parsed",
            extra={"task": task_name, "structured": isinstance(result, Mapping)},
        )
        return result
