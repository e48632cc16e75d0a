"""Configuration management for the PaperMind client."""

from __future__ import annotations

import os
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from papermind.llm.models import ProviderType

DEFAULT_MODEL = "deepseek-chat"
DEEPSEEK_BASE_URL = "https://api.deepseek.com"
OPENAI_BASE_URL = "https://api.openai.com/v1"

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


class AISettings(BaseModel):
    """Credential and model choice passed explicitly to the client."""
    openai_key: str | None = None
    model: str = DEFAULT_MODEL

    @property
    def is_deepseek(self) -> bool:
        return "deepseek" in self.model.lower()

    @property
    def base_url(self) -> str:
        """API base URL selected from the model name."""
        return DEEPSEEK_BASE_URL if self.is_deepseek else OPENAI_BASE_URL

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.DEEPSEEK if self.is_deepseek else ProviderType.OPENAI

    @property
    def provider(self) -> str:
        return self.provider_type.value


class TimeoutSettings(BaseModel):
    """HTTP timeouts in seconds."""
    connect: float = Field(default=10.0, gt=0)
    read: float = Field(default=60.0, gt=0)
    write: float = Field(default=10.0, gt=0)
    pool: float = Field(default=10.0, gt=0)


class Configuration:
    """Manages configuration and environment variables for the PaperMind client."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = self._load_yaml_config(self.config_path)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary.

        Returns:
            The complete configuration dictionary.
        """
        return self._config

    def get_llm_config(self) -> dict[str, Any]:
        """Get LLM configuration from YAML.

        Returns:
            LLM configuration dictionary.
        """
        llm_config = self._config.get("llm") or {}
        if not isinstance(llm_config, dict):
            raise ValueError("llm section must be a YAML dict")
        return llm_config

    @property
    def llm_api_key(self) -> str | None:
        """Get the API key, preferring environment variables over YAML.

        Returns:
            The API key, or None when no source provides one.
        """
        for env_key in ("OPENAI_API_KEY", "DEEPSEEK_API_KEY"):
            api_key = os.getenv(env_key)
            if api_key:
                return api_key
        return self.get_llm_config().get("openai_key") or None

    @property
    def model(self) -> str:
        """Get the configured model name."""
        return (
            os.getenv("PAPERMIND_MODEL")
            or self.get_llm_config().get("model")
            or DEFAULT_MODEL
        )

    def get_ai_settings(self) -> AISettings:
        """Build the explicit settings object used by the client."""
        return AISettings(openai_key=self.llm_api_key, model=self.model)

    def get_timeout_settings(self) -> TimeoutSettings:
        """Get HTTP timeout configuration.

        Raises:
            ValueError: If a timeout value is not positive.
        """
        return TimeoutSettings(**(self.get_llm_config().get("timeout") or {}))

    def get_prompts_config(self) -> dict[str, int]:
        """Get context truncation limits for prompt building.

        Raises:
            ValueError: If a limit is missing or not a positive integer.
        """
        prompts_config = self._config.get("prompts") or {}
        required_keys = ["explanation_context_chars", "report_context_chars"]
        for key in required_keys:
            if key not in prompts_config:
                raise ValueError(
                    f"prompts.{key} must be explicitly configured in config.yaml"
                )
            value = prompts_config[key]
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"prompts.{key} must be a positive integer")

        return {key: prompts_config[key] for key in required_keys}

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Logging configuration dictionary.
        """
        return self._config.get("logging") or {}
