"""Ollama embedding client."""

import logging

import requests

from ..errors import EmbeddingUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434"
EMBEDDING_MODEL = "nomic-embed-text"
PROBE_TIMEOUT = 5
EMBEDDING_TIMEOUT = 30


class OllamaClient:
    """Requests embeddings from a local Ollama server.

    Availability is probed once on first use and cached; ``refresh()``
    probes again.
    """

    def __init__(
        self,
        url: str = DEFAULT_OLLAMA_URL,
        model: str = EMBEDDING_MODEL,
        probe_timeout: float = PROBE_TIMEOUT,
        request_timeout: float = EMBEDDING_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.url = url.rstrip("/")
        self.model = model
        self.probe_timeout = probe_timeout
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self._available: bool | None = None

    @classmethod
    def from_config(cls, config: dict) -> "OllamaClient":
        ollama_cfg = config.get("ollama", {})
        return cls(
            url=ollama_cfg.get("url", DEFAULT_OLLAMA_URL),
            model=ollama_cfg.get("model", EMBEDDING_MODEL),
            probe_timeout=ollama_cfg.get("probe_timeout", PROBE_TIMEOUT),
            request_timeout=ollama_cfg.get("request_timeout", EMBEDDING_TIMEOUT),
        )

    def _probe(self) -> bool:
        try:
            resp = self.session.get(f"{self.url}/api/tags", timeout=self.probe_timeout)
        except requests.RequestException as e:
            logger.debug(f"Ollama probe failed: {e}")
            return False
        return resp.status_code == 200

    def is_available(self) -> bool:
        if self._available is None:
            self._available = self._probe()
        return self._available

    def refresh(self) -> bool:
        self._available = self._probe()
        return self._available

    def get_embedding(self, text: str, timeout: float | None = None) -> list[float]:
        """Embed one text. Raises EmbeddingUnavailableError on any failure."""
        if not self.is_available():
            raise EmbeddingUnavailableError()

        try:
            resp = self.session.post(
                f"{self.url}/api/embeddings",
                json={"model": self.model, "prompt": text},
                timeout=timeout if timeout is not None else self.request_timeout,
            )
        except requests.RequestException as e:
            raise EmbeddingUnavailableError(f"ollama request failed: {e}") from e

        if resp.status_code != 200:
            raise EmbeddingUnavailableError(f"ollama returned status {resp.status_code}")

        try:
            embedding = resp.json()["embedding"]
        except (ValueError, KeyError, TypeError) as e:
            raise EmbeddingUnavailableError(f"decoding ollama response: {e}") from e

        return [float(x) for x in embedding]
