"""Model provider client for OpenAI-compatible chat completions APIs such as OpenRouter."""

import logging
from typing import Any, Dict, Optional

import httpx

from kube_sherlock.errors import ModelNoContentError, ModelUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.1


class ModelClient:
    """Single-shot text generation against an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: str,
        timeout: Optional[float] = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def generate(self, prompt: str, temperature: Optional[float] = DEFAULT_TEMPERATURE) -> str:
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            body["temperature"] = temperature

        logger.debug(f"Calling model {self.model} ({len(prompt)} prompt chars)")
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                resp = await client.post("/chat/completions", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Model API returned {e.response.status_code}")
            raise ModelUnavailableError(f"model API error ({e.response.status_code}): {e.response.text[:200]}")
        except httpx.HTTPError as e:
            logger.error(f"Model API request failed: {e}")
            raise ModelUnavailableError(f"model API request failed: {e}")
        except ValueError:
            raise ModelUnavailableError("model API returned a non-JSON body")

        return self._content(data)

    @staticmethod
    def _content(data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ModelNoContentError("no response generated") from None
        if not isinstance(content, str) or not content.strip():
            raise ModelNoContentError("no response generated")
        return content


def create_model_client(settings) -> ModelClient:
    if not settings.api_key:
        raise RuntimeError("OPENROUTER_API_KEY must be set in environment, config file or --api-key")
    return ModelClient(
        model=settings.model,
        base_url=settings.base_url,
        api_key=settings.api_key,
        timeout=settings.request_timeout,
    )
