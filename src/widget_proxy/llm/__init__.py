"""
Upstream LLM API client.

- openai_client.py: OpenAIResponsesClient (httpx, one request per call)
"""

from widget_proxy.llm.openai_client import OpenAIResponsesClient

__all__ = ["OpenAIResponsesClient"]
