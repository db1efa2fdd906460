"""Chat model construction for the report summarizer."""

import importlib
import os
from typing import Mapping, NamedTuple, Optional

from langchain_core.language_models import BaseChatModel


class ProviderSpec(NamedTuple):
    module: str
    class_name: str
    default_model: str
    model_arg: str = "model"


# Integration package, chat model class and default model per provider.
PROVIDERS = {
    "openai": ProviderSpec("langchain_openai", "ChatOpenAI", "gpt-4o-mini"),
    "anthropic": ProviderSpec("langchain_anthropic", "ChatAnthropic", "claude-3-5-sonnet-20241022"),
    "groq": ProviderSpec("langchain_groq", "ChatGroq", "llama-3.1-70b-versatile"),
    "bedrock": ProviderSpec("langchain_aws", "ChatBedrock", "eu.amazon.nova-pro-v1:0", model_arg="model_id"),
    "google": ProviderSpec("langchain_google_genai", "ChatGoogleGenerativeAI", "gemini-1.5-flash"),
}

DEFAULT_MODELS = {name: spec.default_model for name, spec in PROVIDERS.items()}
SUPPORTED_PROVIDERS = set(PROVIDERS)

# Summaries should be close to deterministic and short.
DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_TOKENS = 1000


def generation_kwargs(provider: str, temperature: float, max_tokens: int) -> dict:
    """Translate temperature / token limit into the provider's constructor arguments."""
    if provider == "bedrock":
        return {"model_kwargs": {"temperature": temperature, "max_tokens": max_tokens}}
    if provider == "google":
        return {"temperature": temperature, "max_output_tokens": max_tokens}
    return {"temperature": temperature, "max_tokens": max_tokens}


def get_llm(
    provider: str = "openai",
    model: Optional[str] = None,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    **kwargs,
) -> BaseChatModel:
    """Build the chat model used for summaries and recommendations.

    The provider's integration package is imported on demand, so only the
    selected one has to be installed.

    Args:
        provider: One of :data:`SUPPORTED_PROVIDERS` (case-insensitive).
        model: Model name; the provider default when omitted.
        temperature: Sampling temperature.
        max_tokens: Upper bound on generated tokens.
        **kwargs: Extra constructor arguments; they win over the generation settings.

    Raises:
        ValueError: For an unknown provider.
    """
    key = provider.lower()
    spec = PROVIDERS.get(key)
    if spec is None:
        raise ValueError(
            f"Unsupported LLM provider: '{key}'. "
            f"Supported providers: {sorted(SUPPORTED_PROVIDERS)}"
        )

    chat_cls = getattr(importlib.import_module(spec.module), spec.class_name)
    options = {**generation_kwargs(key, temperature, max_tokens), **kwargs}
    return chat_cls(**{spec.model_arg: model or spec.default_model}, **options)


def llm_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[BaseChatModel]:
    """Build a chat model from ``DQ_LLM_PROVIDER`` / ``DQ_LLM_MODEL``.

    Returns None when no provider is configured (or it is ``"none"``).
    """
    env = os.environ if environ is None else environ
    provider = (env.get("DQ_LLM_PROVIDER") or "").strip().lower()
    if not provider or provider == "none":
        return None
    return get_llm(provider=provider, model=env.get("DQ_LLM_MODEL") or None)
