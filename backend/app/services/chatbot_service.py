"""
Chatbot adapter: free-text question -> inventory lookup -> reply.

The reply is phrased by the completion client when one is configured,
otherwise it comes from templates over the same search results.
"""
import logging
import time
from typing import Optional

from sqlalchemy.orm import Session

from ai.fallback import templated_reply
from ai.groq_client import ChatCompletionClient
from ai.prompts import build_system_prompt
from app.core.audit import AuditLog
from app.services.medicine_search import find_alternatives, sample_categories, search_medicines

logger = logging.getLogger(__name__)

SLOW_RESPONSE_SECONDS = 2.0


def respond(db: Session, query: str, completion: Optional[ChatCompletionClient] = None) -> str:
    started = time.monotonic()
    AuditLog.log_workflow("chatbot", "Processing chatbot query", query=query[:100])

    matches = search_medicines(db, query)
    alternatives = find_alternatives(db, query)

    reply = None
    if completion is not None:
        messages = [
            {"role": "system", "content": build_system_prompt(matches, alternatives)},
            {"role": "user", "content": query},
        ]
        reply = completion.complete(messages)
        if reply is None:
            logger.info("Completion unavailable for this query, using templated reply")

    if reply is None:
        categories = [] if matches or alternatives else sample_categories(db)
        reply = templated_reply(query, matches, alternatives, categories)

    elapsed = time.monotonic() - started
    if elapsed > SLOW_RESPONSE_SECONDS:
        logger.warning(f"Chatbot response took {elapsed:.2f}s (query: {query[:50]})")

    AuditLog.log_workflow(
        "chatbot",
        "Chatbot query processed",
        response_ms=int(elapsed * 1000),
        matches=len(matches),
        alternatives=len(alternatives),
        used_completion=completion is not None,
    )
    return reply
