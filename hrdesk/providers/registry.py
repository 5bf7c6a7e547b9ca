"""Provider registry: builds the configured generation provider."""

from typing import Dict, Optional

from hrdesk.config import Settings
from hrdesk.core.logging import get_logger
from hrdesk.providers.base import BaseProvider, ProviderType

logger = get_logger(__name__)


class ProviderRegistry:
    """Registry holding the generation providers for this process."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.providers: Dict[str, BaseProvider] = {}
        self.default_provider = settings.provider_mode
        self._init_providers()

    def _init_providers(self) -> None:
        if self.settings.provider_mode == ProviderType.MOCK.value:
            from hrdesk.providers.mock import MockProvider

            self.providers = {ProviderType.MOCK.value: MockProvider()}
            logger.info("Initialized deterministic mock provider (PROVIDER_MODE=mock)")
            return

        from hrdesk.providers.openai_compat import OpenAICompatProvider

        self.providers = {
            ProviderType.OPENAI_COMPAT.value: OpenAICompatProvider(
                base_url=self.settings.provider_base_url,
                api_key=self.settings.provider_api_key,
                timeout=self.settings.provider_timeout_seconds,
            )
        }
        logger.info(
            "Initialized OpenAI-compatible provider",
            data={"base_url": self.settings.provider_base_url, "model": self.settings.provider_model},
        )

    @property
    def default_model(self) -> str:
        if self.default_provider == ProviderType.MOCK.value:
            return "mock-model"
        return self.settings.provider_model

    def get_provider(self, name: Optional[str] = None) -> Optional[BaseProvider]:
        """Get a provider by name, or the default."""
        return self.providers.get(name or self.default_provider)

    async def healthcheck_all(self) -> Dict[str, bool]:
        results = {}
        for name, provider in self.providers.items():
            results[name] = await provider.healthcheck()
        return results

    async def aclose(self) -> None:
        for name, provider in self.providers.items():
            try:
                await provider.aclose()
            except Exception as exc:
                logger.warning(f"Error closing provider {name}: {exc}")
