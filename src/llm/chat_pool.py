"""Chat provider pool: one lazily built provider per model, routed by vendor."""

from dataclasses import dataclass
from typing import Optional

import structlog

from ..config.settings import Settings
from .chat_provider import ChatProvider

logger = structlog.get_logger()


@dataclass(frozen=True)
class Vendor:
    """An OpenAI-compatible endpoint and the settings attribute holding its key."""

    name: str
    prefixes: tuple[str, ...]
    base_url: Optional[str]
    key_attr: str


DEEPSEEK = Vendor("deepseek", ("deepseek",), "https://api.deepseek.com", "deepseek_api_key_str")
OPENAI = Vendor("openai", ("gpt", "o3", "o4"), None, "openai_api_key_str")

VENDORS = (DEEPSEEK, OPENAI)


def vendor_for(model: str) -> Vendor:
    """Match on model prefix; unknown models go to OpenAI."""
    for vendor in VENDORS:
        if model.startswith(vendor.prefixes):
            return vendor
    return OPENAI


class ChatProviderPool:
    """Registry of chat providers by model."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._providers: dict[str, ChatProvider] = {}

    def _resolve_vendor(self, model: str) -> tuple[Optional[str], Optional[str]]:
        """(base_url, api_key) for a model. ``llm_base_url`` overrides OpenAI's endpoint."""
        vendor = vendor_for(model)
        api_key = getattr(self._settings, vendor.key_attr, None)
        base_url = vendor.base_url
        if vendor is OPENAI:
            base_url = self._settings.llm_base_url or base_url
        return base_url, api_key

    def get_for_model(self, model: str) -> Optional[ChatProvider]:
        """Cached provider for the model, or None when its vendor has no key."""
        provider = self._providers.get(model)
        if provider is not None:
            return provider

        base_url, api_key = self._resolve_vendor(model)
        if not api_key:
            logger.warning("No API key for model", model=model, vendor=vendor_for(model).name)
            return None

        provider = ChatProvider(
            model=model,
            api_key=api_key,
            base_url=base_url,
            max_retries=self._settings.llm_max_retries,
        )
        self._providers[model] = provider
        logger.debug("Created chat provider", model=model, vendor=vendor_for(model).name)
        return provider

    def get_escalation_provider(self) -> Optional[ChatProvider]:
        """Provider for ambiguous-message classification."""
        return self.get_for_model(self._settings.model_escalation)

    def available_vendors(self) -> list[str]:
        """Vendors with a configured API key."""
        return [v.name for v in VENDORS if getattr(self._settings, v.key_attr, None)]

    async def close(self) -> None:
        """Close every provider's HTTP client."""
        providers, self._providers = list(self._providers.values()), {}
        for provider in providers:
            await provider.close()
