"""Entity and topic extraction via Together AI.

Talks to Together's OpenAI-compatible chat completions endpoint with the
openai SDK. The HTTP client is created on first use, so an unconfigured
extractor never opens connections.

Every public method degrades instead of raising: a missing key, timeout,
rate limit on both models, malformed JSON or an open circuit all produce an
empty result.
"""

import asyncio
import json
import logging
from typing import Any

import openai
from pydantic import ValidationError

from events_indexer.extraction.circuit_breaker import CircuitBreaker, CircuitOpenError
from events_indexer.extraction.config import ExtractionConfig
from events_indexer.extraction.prompts import (
    CLASSIFY_SYSTEM_PROMPT,
    EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_USER_PROMPT,
)
from events_indexer.extraction.schemas import (
    EXTRACTION_JSON_SCHEMA,
    EntityMention,
    ExtractionResult,
)
from events_indexer.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


def parse_extraction(data: Any) -> ExtractionResult:
    """Build an ExtractionResult from decoded model output.

    Entities that fail validation (unknown type, blank text) are dropped
    one by one; non-string topics are ignored.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Expected JSON object, got {type(data).__name__}")

    entities: list[EntityMention] = []
    for item in data.get("entities") or []:
        try:
            entities.append(EntityMention.model_validate(item))
        except ValidationError:
            logger.debug("Dropping invalid entity: %r", item)

    topics = [t for t in data.get("topics") or [] if isinstance(t, str)]

    confidence = data.get("confidence")
    if not isinstance(confidence, (int, float)) or not 0 <= confidence <= 1:
        confidence = None

    return ExtractionResult(entities=entities, topics=topics, confidence=confidence)


class EntityExtractionClient:
    """Chat-completion extractor with model fallback and a circuit breaker.

    Usage:
        client = EntityExtractionClient()
        result = await client.extract("Stellar Development Foundation ...")
        result.topics    # ["stellar", "payments"]
        result.entities  # [EntityMention(text="Stellar Development Foundation", type="ORG")]
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self._config = config or ExtractionConfig()
        self._client: Any = None
        self._breaker = CircuitBreaker(
            failure_threshold=self._config.circuit_failure_threshold,
            recovery_timeout=self._config.circuit_recovery_timeout,
            name="together_ai",
        )
        self._metrics = get_metrics()

        if not self._config.configured:
            logger.warning("Extraction API key not configured, extraction disabled")

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def available(self) -> bool:
        return self._config.configured

    def _get_client(self) -> Any:
        """Lazy-initialize the async OpenAI-compatible client."""
        if self._client is None:
            api_key = self._config.api_key
            self._client = openai.AsyncOpenAI(
                api_key=api_key.get_secret_value() if api_key else None,
                base_url=self._config.base_url,
                timeout=self._config.timeout,
            )
        return self._client

    async def _complete(self, text: str, model: str) -> ExtractionResult:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                {"role": "user", "content": EXTRACTION_USER_PROMPT.format(content=text)},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": "extraction_result",
                    "schema": EXTRACTION_JSON_SCHEMA,
                },
            },
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("No content in response")

        result = parse_extraction(json.loads(content))
        logger.debug(
            "Extracted %d entities and %d topics using %s",
            len(result.entities), len(result.topics), model,
        )
        return result

    async def extract(self, text: str) -> ExtractionResult:
        """Extract entities and topics from text. Never raises."""
        if not self._config.configured or not text.strip():
            return ExtractionResult()

        try:
            return await self._breaker.call(
                self._complete, text, self._config.primary_model
            )
        except CircuitOpenError:
            self._metrics.record_extraction_failure("circuit_open")
            return ExtractionResult()
        except openai.RateLimitError:
            logger.warning("Rate limited on primary model, trying fallback")
        except Exception as e:
            logger.error(f"Extraction failed: {e}")
            self._metrics.record_extraction_failure(type(e).__name__)
            return ExtractionResult()

        try:
            return await self._breaker.call(
                self._complete, text, self._config.fallback_model
            )
        except Exception as e:
            logger.error(f"Fallback extraction failed: {e}")
            self._metrics.record_extraction_failure("rate_limited")
            return ExtractionResult()

    async def batch_extract(
        self,
        items: list[tuple[str, str]],
    ) -> dict[str, ExtractionResult]:
        """Extract for (id, text) pairs in small concurrent groups.

        Groups of `batch_size` run concurrently with a pause between groups
        to stay under provider rate limits.
        """
        results: dict[str, ExtractionResult] = {}
        size = self._config.batch_size

        for start in range(0, len(items), size):
            group = items[start:start + size]
            extracted = await asyncio.gather(*(self.extract(text) for _, text in group))
            for (item_id, _), result in zip(group, extracted):
                results[item_id] = result

            if start + size < len(items) and self._config.batch_delay_seconds:
                await asyncio.sleep(self._config.batch_delay_seconds)

        return results

    async def classify_content(self, text: str, categories: list[str]) -> str | None:
        """Pick one of categories for text, or None if the answer is not one of them."""
        if not self._config.configured or not categories:
            return None

        async def _call() -> str | None:
            client = self._get_client()
            response = await client.chat.completions.create(
                model=self._config.primary_model,
                messages=[
                    {
                        "role": "system",
                        "content": CLASSIFY_SYSTEM_PROMPT.format(
                            categories=", ".join(categories)
                        ),
                    },
                    {"role": "user", "content": text},
                ],
                temperature=self._config.temperature,
                max_tokens=50,
            )
            content = response.choices[0].message.content if response.choices else None
            return content.strip() if content else None

        try:
            answer = await self._breaker.call(_call)
        except Exception as e:
            logger.error(f"Classification failed: {e}")
            return None

        return answer if answer in categories else None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
