"""LLM provider interfaces and the neural invoker built on them."""

from .neural import LLMNeuralInvoker, NeuralInvoker, build_prompt, parse_response
from .provider import (
    ConsoleEchoProvider,
    LLMProvider,
    OllamaProvider,
    PromptContext,
    StaticResponseProvider,
)
from ..errors import ProviderError

__all__ = [
    "LLMProvider",
    "PromptContext",
    "ProviderError",
    "ConsoleEchoProvider",
    "StaticResponseProvider",
    "OllamaProvider",
    "NeuralInvoker",
    "LLMNeuralInvoker",
    "build_prompt",
    "parse_response",
]
