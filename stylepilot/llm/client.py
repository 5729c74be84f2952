"""
LLM Client
==========
Unified asynchronous client wrapper for vision-capable LLM providers.
Supports Gemini (REST, primary) and OpenAI-compatible endpoints (OpenRouter, Groq).

Multimodal Requests:
    - Every call carries a text prompt plus zero or more images
    - Gemini receives images as ``inline_data`` parts (base64)
    - OpenAI-compatible providers receive ``image_url`` parts with data URLs

Provider Fallback:
    - Primary provider first, then the next healthy configured provider
    - Fallback triggers on: HTTP error, timeout, rate limit, empty response
    - Each provider has its own retry budget (ProviderConfig.max_retries)
    - HTTP 429 skips the remaining retries and moves to the next provider

The client returns the provider's raw text. Interpreting it (stylesheet
cleanup, evaluation parsing) is the caller's job.
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import httpx

from stylepilot.llm.router import ProviderConfig, LLMRouter

logger = logging.getLogger(__name__)

# (mime type, raw bytes)
ImagePart = Tuple[str, bytes]


# ---------------------------------------------------------------------------
# LLM Response
# ---------------------------------------------------------------------------
@dataclass
class LLMResponse:
    """Text reply from an LLM provider."""
    text: str
    provider_name: str
    success: bool = True
    error: str = ""
    attempts: List[str] = field(default_factory=list)


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding markdown code fence (```css ... ```), if any."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        cleaned = cleaned[first_newline + 1:] if first_newline != -1 else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3].rstrip()
    return cleaned


# ---------------------------------------------------------------------------
# LLM Client
# ---------------------------------------------------------------------------
class LLMClient:
    """
    Async HTTP client for calling LLM providers.

    Usage:
        client = LLMClient()
        response = await client.call_with_fallback(prompt, system, router, images)
        await client.close()
    """

    def __init__(self, timeout_seconds: float = 60.0) -> None:
        self._timeout = timeout_seconds
        self._http: Optional[httpx.AsyncClient] = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def call(
        self,
        user_prompt: str,
        system_prompt: str,
        provider: ProviderConfig,
        images: Sequence[ImagePart] = (),
    ) -> LLMResponse:
        """
        Send a prompt (and images) to one provider, retrying per its config.

        Parameters
        ----------
        user_prompt : str
            The task prompt.
        system_prompt : str
            The system prompt with rules.
        provider : ProviderConfig
            Target provider.
        images : sequence of (mime_type, bytes)
            Images attached after the text, in order.

        Returns
        -------
        LLMResponse
            success=False when every attempt failed or returned nothing.
        """
        last_error = ""
        for attempt in range(1, provider.max_retries + 1):
            try:
                if provider.name == "gemini":
                    raw = await self._call_gemini(user_prompt, system_prompt, provider, images)
                else:
                    raw = await self._call_openai_compatible(user_prompt, system_prompt, provider, images)

                if raw and raw.strip():
                    return LLMResponse(text=raw, provider_name=provider.name)

                last_error = "empty response"
                logger.warning("Provider %s attempt %d: empty response", provider.name, attempt)

            except httpx.TimeoutException:
                last_error = "timeout"
                logger.warning("Provider %s attempt %d: timeout", provider.name, attempt)
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                last_error = f"HTTP {status}"
                logger.warning("Provider %s attempt %d: HTTP %d", provider.name, attempt, status)
                if status == 429:
                    break
            except httpx.HTTPError as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning("Provider %s attempt %d: %s", provider.name, attempt, last_error)

        return LLMResponse(
            text="",
            provider_name=provider.name,
            success=False,
            error=f"{provider.name}: {last_error or 'no attempts made'}",
        )

    async def _call_gemini(
        self,
        user_prompt: str,
        system_prompt: str,
        provider: ProviderConfig,
        images: Sequence[ImagePart],
    ) -> str:
        """Call Gemini REST API."""
        http = await self._get_http()
        url = f"{provider.base_url}/models/{provider.model}:generateContent?key={provider.api_key}"
        parts = [{"text": user_prompt}]
        for mime_type, data in images:
            parts.append({
                "inline_data": {
                    "mime_type": mime_type,
                    "data": base64.b64encode(data).decode("ascii"),
                }
            })
        payload = {
            "system_instruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": provider.temperature,
                "maxOutputTokens": 8192,
            },
        }
        resp = await http.post(url, json=payload)
        resp.raise_for_status()
        data = resp.json()

        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts_out = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts_out)

    async def _call_openai_compatible(
        self,
        user_prompt: str,
        system_prompt: str,
        provider: ProviderConfig,
        images: Sequence[ImagePart],
    ) -> str:
        """Call an OpenAI-compatible chat completions API."""
        http = await self._get_http()
        url = f"{provider.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {provider.api_key}",
            "Content-Type": "application/json",
        }
        content = [{"type": "text", "text": user_prompt}]
        for mime_type, data in images:
            encoded = base64.b64encode(data).decode("ascii")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
            })
        payload = {
            "model": provider.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": content},
            ],
            "temperature": provider.temperature,
            "max_tokens": 8192,
        }
        resp = await http.post(url, json=payload, headers=headers)
        resp.raise_for_status()
        data = resp.json()

        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""

    async def call_with_fallback(
        self,
        user_prompt: str,
        system_prompt: str,
        router: LLMRouter,
        images: Sequence[ImagePart] = (),
    ) -> LLMResponse:
        """
        Call the primary provider, then each healthy fallback in turn.

        Returns
        -------
        LLMResponse
            The first successful reply, or a failure listing every provider tried.
        """
        provider = router.get_provider()
        if provider is None:
            return LLMResponse(text="", provider_name="", success=False, error="No LLM provider configured")

        tried: List[str] = []
        errors: List[str] = []
        while provider is not None:
            tried.append(provider.name)
            response = await self.call(user_prompt, system_prompt, provider, images)
            if response.success:
                router.report_success(provider.name)
                response.attempts = tried
                return response
            router.report_failure(provider.name)
            errors.append(response.error)
            provider = router.get_fallback_provider(*tried)

        return LLMResponse(
            text="",
            provider_name=tried[0],
            success=False,
            error="All providers failed: " + "; ".join(errors),
            attempts=tried,
        )
