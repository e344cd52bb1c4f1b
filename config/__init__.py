"""Configuration package for the mock-interview service."""
from .llm_routes import AppConfig, LlmRoute, load_config, resolve_registry
from .registry import FEEDBACK_KEY, JUDGE_KEY, QUESTION_GEN_KEY, bind_model, get_model, is_bound, unbind_model
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_config",
    "resolve_registry",
    "FEEDBACK_KEY",
    "JUDGE_KEY",
    "QUESTION_GEN_KEY",
    "bind_model",
    "get_model",
    "is_bound",
    "unbind_model",
    "Settings",
    "settings",
]
