from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import HttpClient, HttpResponse, LlmGatewayError, LlmRateLimitError, chat, json_model

__all__ = ["HttpClient", "HttpResponse", "LlmGatewayError", "LlmRateLimitError", "chat", "json_model"]
