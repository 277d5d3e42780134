"""OpenAI-compatible LLM client wrapper with error handling."""
import httpx
from typing import List, Dict, Optional
import structlog

from docqa import config

logger = structlog.get_logger()


class LLMClient:
    """Async client for chat completions and embeddings."""

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Provider API key (defaults to config.OPENAI_API_KEY)
            base_url: API base URL (defaults to config.OPENAI_BASE_URL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key if api_key is not None else config.OPENAI_API_KEY
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.timeout = timeout or config.LLM_TIMEOUT
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self._transport,
        )

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to config.CHAT_MODEL)
            max_tokens: Completion length cap (defaults to config)
            temperature: Sampling temperature (defaults to config)

        Returns:
            The assistant message content, stripped

        Raises:
            httpx.HTTPError: On transport or API errors
            ValueError: If the response carries no message content
        """
        model = model or config.CHAT_MODEL

        payload = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens or config.COMPLETION_MAX_TOKENS,
            "temperature": (
                temperature if temperature is not None else config.COMPLETION_TEMPERATURE
            ),
        }

        try:
            async with self._client() as client:
                logger.info(
                    "llm_chat_request",
                    model=model,
                    message_count=len(messages),
                )

                response = await client.post("/chat/completions", json=payload)
                response.raise_for_status()

                data = response.json()

        except httpx.ConnectError as e:
            logger.error("llm_connection_error", error=str(e), base_url=self.base_url)
            raise
        except httpx.HTTPError as e:
            logger.error(
                "llm_http_error",
                error=str(e),
                status_code=getattr(getattr(e, "response", None), "status_code", None),
            )
            raise

        choices = data.get("choices") or []
        content = (choices[0].get("message") or {}).get("content") if choices else None
        if not content:
            raise ValueError("Empty completion returned by the LLM provider")

        logger.info("llm_chat_response", model=model, response_length=len(content))

        return content.strip()

    async def embeddings(
        self,
        texts: List[str],
        model: str = None,
    ) -> List[List[float]]:
        """Embed a batch of texts in one request.

        Args:
            texts: Texts to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)

        Returns:
            One vector per input text, in input order

        Raises:
            httpx.HTTPError: On transport or API errors
            ValueError: If the provider returns the wrong number of vectors
        """
        if not texts:
            return []

        model = model or config.EMBEDDING_MODEL

        try:
            async with self._client() as client:
                logger.debug(
                    "llm_embedding_request",
                    model=model,
                    batch_size=len(texts),
                )

                response = await client.post(
                    "/embeddings",
                    json={"model": model, "input": texts},
                )
                response.raise_for_status()

                data = response.json()

        except httpx.HTTPError as e:
            logger.error("llm_embedding_error", error=str(e))
            raise

        items = data.get("data") or []
        if len(items) != len(texts):
            raise ValueError(
                f"Expected {len(texts)} embeddings, provider returned {len(items)}"
            )

        # The API tags each vector with its input index; don't trust list order
        items = sorted(items, key=lambda item: item.get("index", 0))
        vectors = [item["embedding"] for item in items]

        logger.debug(
            "llm_embedding_response",
            model=model,
            dimension=len(vectors[0]) if vectors else 0,
        )

        return vectors

    async def embed(self, text: str, model: str = None) -> List[float]:
        """Embed a single text."""
        vectors = await self.embeddings([text], model=model)
        return vectors[0]
