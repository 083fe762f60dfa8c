"""Configuration models for matrix_chatgpt."""

from .auth import AuthorizationConfig
from .main import Config

__all__ = ["AuthorizationConfig", "Config"]
