"""
Groq API client for the inventory chatbot.

The model only phrases answers. Inventory facts come from the database and
are handed to it in the system prompt; nothing it returns is written back.

Built once at startup by build_completion_client(). When GROQ_API_KEY is not
set there is no client and the chatbot answers from templates.
"""

import logging
import time
from typing import Dict, List, Optional

from groq import Groq, APIError, APITimeoutError, RateLimitError

# NEVER log API keys
logger = logging.getLogger(__name__)


class ChatCompletionClient:
    """
    Thin wrapper around Groq chat completions.

    Returns the reply text, or None on any error so the caller can fall back.
    Timeouts and rate limits are retried with exponential backoff.
    """

    TEMPERATURE = 0.7
    MAX_TOKENS = 150

    def __init__(
        self,
        api_key: str,
        model: str,
        http_referer: str = "",
        timeout: float = 10.0,
    ):
        headers = {"X-Title": "Pharmacy Inventory"}
        if http_referer:
            headers["HTTP-Referer"] = http_referer

        self.model = model
        self.client = Groq(
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
            default_headers=headers,
        )
        logger.info(f"Chat completion client ready (model={model})")

    def complete(self, messages: List[Dict[str, str]], max_retries: int = 2) -> Optional[str]:
        for attempt in range(max_retries + 1):
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.TEMPERATURE,
                    max_tokens=self.MAX_TOKENS,
                    stream=False,
                )

                if response.choices:
                    content = response.choices[0].message.content
                    if content and content.strip():
                        logger.debug(f"Completion received: {len(content)} chars (attempt {attempt + 1})")
                        return content.strip()
                logger.warning("Completion returned no text")
                return None

            except APITimeoutError:
                if attempt < max_retries:
                    wait_time = 0.5 * (2 ** attempt)
                    logger.warning(f"Groq timeout, retry {attempt + 1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning(f"Groq API timeout after {max_retries} retries")
                    return None

            except RateLimitError:
                if attempt < max_retries:
                    wait_time = 1.0 * (2 ** attempt)
                    logger.warning(f"Groq rate limit, retry {attempt + 1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning("Groq API rate limit exceeded after retries")
                    return None

            except APIError as e:
                logger.error(f"Groq API error: {e}")
                return None

        return None


def build_completion_client(settings) -> Optional[ChatCompletionClient]:
    """Construct the client from settings, or None when no API key is configured."""
    if not settings.GROQ_API_KEY:
        logger.warning(
            "GROQ_API_KEY not set. Chatbot will answer from templates. "
            "Add your key to backend/.env to enable completions."
        )
        return None
    return ChatCompletionClient(
        api_key=settings.GROQ_API_KEY,
        model=settings.CHAT_MODEL,
        http_referer=settings.CHAT_HTTP_REFERER,
        timeout=settings.CHAT_TIMEOUT_SECONDS,
    )
