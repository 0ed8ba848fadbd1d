"""
Configuration management for MCP Orchestrator.

Loads all configuration from environment variables with sensible defaults
for local development. A ``.env`` file in the working directory is read
first.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()


def _split_csv(value: str) -> frozenset[str]:
    return frozenset(item.strip() for item in value.split(",") if item.strip())


@dataclass
class InferenceConfig:
    """Configuration for the model inference service."""
    provider: str = os.getenv("INFERENCE_PROVIDER", "anthropic").lower()
    anthropic_api_key: str = os.getenv("ANTHROPIC_API_KEY", "")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    model: str = os.getenv("INFERENCE_MODEL", "claude-3-5-sonnet-20241022")
    max_tokens: int = int(os.getenv("INFERENCE_MAX_TOKENS", "1000"))
    base_url: str = os.getenv("INFERENCE_BASE_URL", "")

    @property
    def api_key(self) -> str:
        """API key for the active provider."""
        if self.provider == "openai":
            return self.openai_api_key
        return self.anthropic_api_key


@dataclass
class ToolHostConfig:
    """Configuration for the MCP tool host subprocess."""
    server_script_path: str = os.getenv("SERVER_SCRIPT_PATH", "")
    command: str = os.getenv("TOOL_HOST_COMMAND", "")
    init_timeout: float = float(os.getenv("TOOL_HOST_INIT_TIMEOUT", "30"))


@dataclass
class SessionConfig:
    """Configuration for per-session transcripts.

    Eviction is disabled while both ``idle_ttl`` and ``max_sessions`` are 0.
    """
    max_turns: int = int(os.getenv("SESSION_MAX_TURNS", "20"))
    quota_exempt: frozenset[str] = field(
        default_factory=lambda: _split_csv(os.getenv("QUOTA_EXEMPT_SESSIONS", ""))
    )
    idle_ttl: float = float(os.getenv("SESSION_IDLE_TTL_SECONDS", "0"))
    max_sessions: int = int(os.getenv("SESSION_MAX_SESSIONS", "0"))
    cli_session_id: str = os.getenv("CLI_SESSION_ID", "cli")


@dataclass
class PromptConfig:
    """Configuration for the system prompt and caller profile lookup."""
    system_prompt: str = os.getenv("SYSTEM_PROMPT", "")
    profile_api_url: str = os.getenv("PROFILE_API_URL", "")
    profile_api_timeout: float = float(os.getenv("PROFILE_API_TIMEOUT", "10"))


@dataclass
class ServerConfig:
    """Configuration for the FastAPI server."""
    host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "4000"))


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse observability.

    Tracing auto-enables when both public_key and secret_key are provided.
    """
    public_key: str = os.getenv("LANGFUSE_PUBLIC_KEY", "")
    secret_key: str = os.getenv("LANGFUSE_SECRET_KEY", "")
    host: str = os.getenv("LANGFUSE_HOST", "")
    debug: bool = os.getenv("LANGFUSE_DEBUG", "false").lower() == "true"

    @property
    def enabled(self) -> bool:
        """Auto-enable when both keys are configured."""
        return bool(self.public_key and self.secret_key)


@dataclass
class Config:
    """Main configuration container."""
    inference: InferenceConfig
    tool_host: ToolHostConfig
    sessions: SessionConfig
    prompt: PromptConfig
    server: ServerConfig
    langfuse: LangfuseConfig
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def validate(self) -> None:
        """Raise ConfigurationError if a required startup setting is missing."""
        if self.inference.provider not in ("anthropic", "openai"):
            raise ConfigurationError(
                f"Unsupported INFERENCE_PROVIDER '{self.inference.provider}'"
            )
        if not self.inference.api_key:
            env_name = (
                "OPENAI_API_KEY"
                if self.inference.provider == "openai"
                else "ANTHROPIC_API_KEY"
            )
            raise ConfigurationError(f"{env_name} is not set")


def get_config() -> Config:
    """Get the application configuration."""
    return Config(
        inference=InferenceConfig(),
        tool_host=ToolHostConfig(),
        sessions=SessionConfig(),
        prompt=PromptConfig(),
        server=ServerConfig(),
        langfuse=LangfuseConfig(),
    )


# Global config instance
config = get_config()
