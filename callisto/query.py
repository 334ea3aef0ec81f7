"""
Direct model query path used outside the tool-use loop.

Sends a single prompt, retries the raw model call with a fixed delay, and
always returns a JSON document of the shape::

    {"response": str, "context": str, "action": {"type": str, "details": {...}}}
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from .constants import (
    QUERY_MAX_RETRIES,
    QUERY_MAX_TOKENS,
    QUERY_RETRY_DELAY,
    QUERY_TEMPERATURE,
)
from .protocols import LLMClientProtocol

logger = logging.getLogger(__name__)

QUERY_SYSTEM_PROMPT = (
    "You are an AI assistant helping process and analyze conversation "
    "transcripts. Always provide responses in the specified JSON format "
    "with proper structure."
)


class QueryResponseError(ValueError):
    """A JSON model answer that does not have the required structure"""


def validate_response(text: str) -> Dict[str, Any]:
    """
    Validate a model answer.

    A JSON object must carry a non-empty ``response`` and, when ``action``
    is present, both ``action.type`` and ``action.details``. Anything that
    is not JSON is wrapped as a general raw response.

    Raises:
        QueryResponseError: If the answer is JSON but malformed.
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        return {
            "response": text,
            "context": "Raw model response",
            "action": {"type": "general", "details": {}},
        }

    if not isinstance(parsed, dict) or not parsed.get("response"):
        raise QueryResponseError("Response missing required field: response")

    action = parsed.get("action")
    if action is not None:
        if not isinstance(action, dict) or not action.get("type") or action.get("details") is None:
            raise QueryResponseError("Invalid action structure in response")
    return parsed


def error_document(message: str) -> Dict[str, Any]:
    return {
        "response": f"Error processing query: {message}",
        "context": "Error occurred during processing",
        "action": {"type": "error", "details": {"error": True}},
    }


class QueryService:
    """
    Single-prompt model queries with bounded retry.

    Example:
        service = QueryService(LiteLLMClient(LLMConfig(model="claude-3-opus-20240229")))
        document = json.loads(await service.make_query(prompt))
    """

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        max_attempts: int = QUERY_MAX_RETRIES,
        retry_delay: float = QUERY_RETRY_DELAY,
    ):
        self.llm_client = llm_client
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    async def _complete(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": QUERY_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        response = await self.llm_client.chat_completion(
            messages,
            config={
                "max_tokens": QUERY_MAX_TOKENS,
                "temperature": QUERY_TEMPERATURE,
            },
        )
        return response.content or ""

    async def _complete_with_retry(self, prompt: str) -> str:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._complete(prompt)
            except Exception as e:
                last_error = e
                if attempt < self.max_attempts:
                    logger.warning(
                        f"[Query] Attempt {attempt}/{self.max_attempts} failed: {e}; "
                        f"retrying in {self.retry_delay}s"
                    )
                    await asyncio.sleep(self.retry_delay)
        raise last_error

    async def make_query(self, prompt: str) -> str:
        """Return the validated answer (or an error document) as JSON text."""
        logger.info(f"[Query] Sending prompt ({len(prompt)} chars)")
        try:
            text = await self._complete_with_retry(prompt)
            document = validate_response(text)
        except Exception as e:
            logger.error(f"[Query] Failed: {e}")
            return json.dumps(error_document(str(e) or type(e).__name__))

        logger.info(f"[Query] Received response ({len(text)} chars)")
        return json.dumps(document)
