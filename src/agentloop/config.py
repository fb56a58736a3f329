"""Application settings and per-invocation loop configuration."""

from pathlib import Path
from typing import FrozenSet, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import (
    DotEnvSettingsSource,
    EnvSettingsSource,
    JsonConfigSettingsSource,
)

DEFAULT_AGENTLOOP_DIR = Path(".agentloop")
DEFAULT_CONFIG_PATH = DEFAULT_AGENTLOOP_DIR / "config.json"
DEFAULT_CACHE_EXEMPT_TOOLS = ("git_status", "git_diff", "git_log", "repo_list")
DEFAULT_SYSTEM_PROMPT = (
    "You are a software engineering assistant with access to tools. "
    "Read before you conclude, explain multi-step plans briefly, and keep "
    "answers concise. Status notes in the conversation report how much of "
    "your tool budget remains; follow their guidance."
)


class LoopConfig(BaseModel):
    """Immutable knobs for a single agent loop invocation."""

    max_iterations: int = Field(default=20, ge=1)
    token_budget: int = Field(default=150_000, ge=1)
    protected_tail_size: int = Field(default=4, ge=0)
    cache_exempt_tools: FrozenSet[str] = Field(
        default=frozenset(DEFAULT_CACHE_EXEMPT_TOOLS),
        description="Tools whose results reflect live state and are never cached.",
    )
    result_truncation_limit: int = Field(default=12_000, ge=1)
    research_iterations: int = Field(default=3, ge=0)
    min_text_length: int = Field(
        default=20, ge=0, description="Shorter interim text is not emitted."
    )
    chars_per_token: int = Field(default=4, ge=1)
    compaction_min_length: int = Field(
        default=500, description="Tool results at or below this size stay intact."
    )
    compaction_prefix_length: int = Field(
        default=200, description="Characters kept from a compacted tool result."
    )
    model_name: str = Field(
        default="gpt-4o", description="Model used for cost estimation."
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_compaction(self) -> "LoopConfig":
        if self.compaction_prefix_length >= self.compaction_min_length:
            raise ValueError(
                "compaction_prefix_length must be smaller than compaction_min_length."
            )
        return self


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables, .env, and JSON.
    """

    openai_api_key: Optional[SecretStr] = Field(
        default=None, description="OpenAI API key used for LLM access."
    )
    model_name: str = Field(default="gpt-4o", description="Model used by the loop.")
    max_output_tokens: int = Field(
        default=4096, ge=1, description="Completion token ceiling per LLM call."
    )
    llm_timeout_seconds: float = Field(
        default=120.0, gt=0, description="Timeout for a single LLM call."
    )
    llm_max_attempts: int = Field(
        default=3, ge=1, description="Transport attempts for retryable LLM errors."
    )
    litellm_use_proxy: bool = Field(
        default=False, description="Route LLM traffic through the LiteLLM proxy."
    )
    litellm_proxy_url: Optional[str] = Field(
        default=None, description="LiteLLM proxy base URL."
    )
    litellm_proxy_api_key: Optional[SecretStr] = Field(
        default=None, description="LiteLLM proxy API key."
    )
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    max_iterations: int = Field(default=20, ge=1)
    token_budget: int = Field(default=150_000, ge=1)
    protected_tail_size: int = Field(default=4, ge=0)
    cache_exempt_tools: Tuple[str, ...] = Field(default=DEFAULT_CACHE_EXEMPT_TOOLS)
    result_truncation_limit: int = Field(default=12_000, ge=1)
    tool_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Per-tool timeout enforced by the library."
    )
    max_history_messages: int = Field(default=100, ge=3)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="forbid"
    )

    @model_validator(mode="after")
    def _check_proxy(self) -> "Config":
        """
        Ensures proxy mode has a proxy URL.

        Returns:
            The validated configuration instance.
        """
        if self.litellm_use_proxy and not self.litellm_proxy_url:
            raise ValueError(
                "LiteLLM proxy URL is required when proxy mode is enabled."
            )
        return self

    @staticmethod
    def _secret_to_str(secret: Optional[SecretStr]) -> Optional[str]:
        """Return the underlying secret value if present."""

        if secret is None:
            return None
        return secret.get_secret_value()

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """
        Loads configuration from a JSON file when present.

        Values from .env and the environment override the JSON file.

        Args:
            path: Optional override path for the JSON config file.

        Returns:
            A validated configuration object.
        """
        config_path = path or DEFAULT_CONFIG_PATH
        if not config_path.exists():
            return cls()

        json_source = JsonConfigSettingsSource(cls, json_file=config_path)
        dotenv_source = DotEnvSettingsSource(cls)
        env_source = EnvSettingsSource(cls)
        merged: dict[str, object] = {}
        merged.update(json_source())
        merged.update(dotenv_source())
        merged.update(env_source())
        return cls.model_validate(merged)

    def get_openai_api_key(self) -> Optional[str]:
        """Returns the OpenAI API key for runtime usage."""

        return self._secret_to_str(self.openai_api_key)

    def use_litellm_proxy(self) -> bool:
        """Returns whether LiteLLM proxy usage is enabled."""

        return self.litellm_use_proxy

    def get_litellm_proxy_url(self) -> Optional[str]:
        return self.litellm_proxy_url

    def get_litellm_proxy_api_key(self) -> Optional[str]:
        return self._secret_to_str(self.litellm_proxy_api_key)

    def get_model_name(self) -> str:
        return self.model_name

    def loop_config(self) -> LoopConfig:
        """
        Builds the per-invocation loop configuration.

        Returns:
            A LoopConfig carrying the loop budgets and thresholds.
        """
        return LoopConfig(
            max_iterations=self.max_iterations,
            token_budget=self.token_budget,
            protected_tail_size=self.protected_tail_size,
            cache_exempt_tools=frozenset(self.cache_exempt_tools),
            result_truncation_limit=self.result_truncation_limit,
            model_name=self.model_name,
        )
