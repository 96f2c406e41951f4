"""Client for the local text-generation service."""

import logging
import os
from abc import ABC, abstractmethod

import httpx

from taskgraph.tasks.errors import ExternalServiceFailure, FailureReason

logger = logging.getLogger(__name__)


class GenerationClient(ABC):
    """Abstract base class for text-generation backends."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Generate a completion for a prompt.

        Args:
            prompt: Prompt text

        Returns:
            Completion text

        Raises:
            ExternalServiceFailure: If no completion could be produced
        """
        pass


class OllamaClient(GenerationClient):
    """Ollama-compatible ``/api/generate`` client (non-streaming)."""

    def __init__(self, config: dict) -> None:
        """
        Initialize Ollama client.

        Config keys:
            base_url: Service root (default: http://localhost:11434)
            base_url_env: Environment variable overriding base_url (default: OLLAMA_HOST)
            model: Model identifier (default: granite3.3:2b)
            timeout_seconds: Request timeout (default: 120)
        """
        self.config = config
        base_url_env = config.get("base_url_env", "OLLAMA_HOST")
        self.base_url = (
            os.getenv(base_url_env) or config.get("base_url", "http://localhost:11434")
        ).rstrip("/")
        # OLLAMA_HOST is commonly a bare host:port
        if "://" not in self.base_url:
            self.base_url = f"http://{self.base_url}"
        self.model = config.get("model", "granite3.3:2b")
        self.timeout_seconds = config.get("timeout_seconds", 120)

        logger.info(f"Initialized Ollama client: {self.base_url} (model: {self.model})")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/api/generate"

    async def generate(self, prompt: str) -> str:
        """
        Send one generation request.

        Raises:
            ExternalServiceFailure: UNREACHABLE for connection errors and
                timeouts, OTHER for error statuses and malformed bodies
        """
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        logger.debug(f"Calling {self.endpoint} with {len(prompt)} prompt chars")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self.endpoint, json=payload)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.error(f"Generation service unreachable at {self.base_url}: {e}")
            raise ExternalServiceFailure(
                FailureReason.UNREACHABLE,
                f"Could not reach the summary service. Make sure Ollama is running on {self.base_url}",
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Generation request failed: {e}")
            raise ExternalServiceFailure(FailureReason.OTHER, f"Summary request failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.error(f"Generation service returned HTTP {response.status_code}")
            raise ExternalServiceFailure(
                FailureReason.OTHER, f"Ollama API error: {response.status_code}"
            )

        try:
            text = response.json()["response"]
        except (ValueError, KeyError, TypeError) as e:
            raise ExternalServiceFailure(
                FailureReason.OTHER, "Summary service returned an unexpected response"
            ) from e

        if not isinstance(text, str):
            raise ExternalServiceFailure(
                FailureReason.OTHER, "Summary service returned an unexpected response"
            )
        return text.strip()


def create_client(config: dict) -> GenerationClient:
    """Build the generation client named by ``config['provider']``."""
    provider_name = config.get("provider", "ollama")
    if provider_name == "ollama":
        return OllamaClient(config.get("ollama", {}))
    raise ValueError(f"Unsupported summary provider: {provider_name}")
