"""
LLM Router
==========
Decides which vision-capable LLM provider handles a generation or evaluation call.

Routing Strategy:
    1. Gemini first (primary; receives reference images inline)
    2. On failure (HTTP error, timeout, rate limit, empty reply) → next configured provider
    3. Providers without an API key are never selected

Provider Health Tracking:
    - Track consecutive failures per provider
    - After PROVIDER_COOLDOWN_THRESHOLD failures in a row, skip the provider
      for PROVIDER_COOLDOWN_SKIP_COUNT selections
    - Health is reset when a new pilot run starts
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from stylepilot.core.config import (
    GEMINI_API_KEY, GROQ_API_KEY, OPENROUTER_API_KEY,
    PROVIDER_COOLDOWN_THRESHOLD, PROVIDER_COOLDOWN_SKIP_COUNT,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Provider Configuration
# ---------------------------------------------------------------------------
@dataclass
class ProviderConfig:
    """Configuration for a single LLM provider."""
    name: str
    api_key: str
    base_url: str
    model: str
    max_retries: int = 2
    timeout_seconds: int = 60
    temperature: float = 0.4

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


def default_providers() -> List[ProviderConfig]:
    """Provider chain in priority order, keys read from the environment."""
    return [
        ProviderConfig(
            name="gemini",
            api_key=GEMINI_API_KEY or "",
            base_url="https://generativelanguage.googleapis.com/v1beta",
            model="gemini-2.0-flash",
        ),
        ProviderConfig(
            name="openrouter",
            api_key=OPENROUTER_API_KEY or "",
            base_url="https://openrouter.ai/api/v1",
            model="google/gemini-2.0-flash-exp:free",
            max_retries=1,
        ),
        ProviderConfig(
            name="groq",
            api_key=GROQ_API_KEY or "",
            base_url="https://api.groq.com/openai/v1",
            model="meta-llama/llama-4-scout-17b-16e-instruct",
        ),
    ]


# ---------------------------------------------------------------------------
# Provider Health Tracker
# ---------------------------------------------------------------------------
@dataclass
class ProviderHealth:
    """Tracks consecutive failures and cooldown for a provider."""
    consecutive_failures: int = 0
    is_healthy: bool = True
    max_failures: int = PROVIDER_COOLDOWN_THRESHOLD
    cooldown_length: int = PROVIDER_COOLDOWN_SKIP_COUNT
    cooldown_remaining: int = 0

    def record_failure(self) -> None:
        self.consecutive_failures += 1
        if self.is_healthy and self.consecutive_failures >= self.max_failures:
            self.is_healthy = False
            self.cooldown_remaining = self.cooldown_length
            logger.warning(
                "Provider entering cooldown after %d failures (skip %d calls)",
                self.consecutive_failures, self.cooldown_remaining,
            )

    def record_success(self) -> None:
        self.consecutive_failures = 0

    def tick_cooldown(self) -> None:
        """Decrement cooldown. Re-enable when it expires."""
        if self.cooldown_remaining > 0:
            self.cooldown_remaining -= 1
            if self.cooldown_remaining <= 0:
                self.is_healthy = True
                # One more failure puts it straight back into cooldown
                self.consecutive_failures = max(0, self.max_failures - 1)
                logger.info("Provider cooldown expired, re-enabled")

    def reset(self) -> None:
        self.consecutive_failures = 0
        self.is_healthy = True
        self.cooldown_remaining = 0


# ---------------------------------------------------------------------------
# LLM Router
# ---------------------------------------------------------------------------
class LLMRouter:
    """
    Routes LLM requests to the best available configured provider.

    Usage:
        router = LLMRouter()
        if router.has_credentials:
            provider = router.get_provider()
            # ... make request ...
            router.report_success(provider.name)   # or report_failure(...)
    """

    def __init__(self, providers: Optional[List[ProviderConfig]] = None) -> None:
        chain = providers if providers is not None else default_providers()
        self._providers: List[ProviderConfig] = [p for p in chain if p.is_configured]
        self._health: Dict[str, ProviderHealth] = {
            p.name: ProviderHealth() for p in self._providers
        }

    @property
    def has_credentials(self) -> bool:
        return bool(self._providers)

    @property
    def provider_names(self) -> List[str]:
        return [p.name for p in self._providers]

    def get_provider(self) -> Optional[ProviderConfig]:
        """
        First healthy configured provider.

        Returns
        -------
        ProviderConfig or None
            None only when no provider has an API key. When every provider
            is cooling down the primary is returned anyway.
        """
        if not self._providers:
            return None

        for h in self._health.values():
            h.tick_cooldown()

        for provider in self._providers:
            if self._health[provider.name].is_healthy:
                logger.debug("Selected provider: %s", provider.name)
                return provider

        logger.warning("All providers unhealthy, falling back to primary")
        return self._providers[0]

    def get_fallback_provider(self, *exclude_names: str) -> Optional[ProviderConfig]:
        """Next healthy provider not in ``exclude_names``, or None."""
        for provider in self._providers:
            if provider.name in exclude_names:
                continue
            if self._health[provider.name].is_healthy:
                logger.info("Falling back to %s (skipping %s)", provider.name, ", ".join(exclude_names))
                return provider
        return None

    def report_success(self, provider_name: str) -> None:
        health = self._health.get(provider_name)
        if health:
            health.record_success()

    def report_failure(self, provider_name: str) -> None:
        health = self._health.get(provider_name)
        if health:
            health.record_failure()

    def reset(self) -> None:
        """Reset all provider health for a new run."""
        for health in self._health.values():
            health.reset()

    def get_health(self, provider_name: str) -> Optional[ProviderHealth]:
        return self._health.get(provider_name)

    @property
    def provider_health_state(self) -> Dict[str, Any]:
        """Per-provider health and cooldown, for the status endpoint."""
        return {
            name: {
                "is_healthy": h.is_healthy,
                "consecutive_failures": h.consecutive_failures,
                "cooldown_remaining": h.cooldown_remaining,
            }
            for name, h in self._health.items()
        }
