"""Chat completion support for the inventory chatbot.

Completions are OPTIONAL. Without a Groq API key the chatbot answers from
templates built from the same search results.
"""

from .groq_client import ChatCompletionClient, build_completion_client
from .fallback import templated_reply
from .prompts import build_system_prompt

__all__ = ["ChatCompletionClient", "build_completion_client", "templated_reply", "build_system_prompt"]
