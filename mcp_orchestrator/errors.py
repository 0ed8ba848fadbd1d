"""Exception types raised by the orchestrator and its collaborators."""

from typing import Optional


class OrchestratorError(Exception):
    """Base error carrying a stable error code."""

    def __init__(self, message: str, error_code: str = "ORCHESTRATOR_ERROR"):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConfigurationError(OrchestratorError):
    """A required startup setting is missing or invalid."""

    def __init__(self, message: str):
        super().__init__(message, error_code="CONFIGURATION_ERROR")


class ToolHostConnectionError(OrchestratorError, ConnectionError):
    """The tool host could not be reached or tool discovery failed."""

    def __init__(self, message: str):
        super().__init__(message, error_code="TOOL_HOST_UNAVAILABLE")


class ToolExecutionError(OrchestratorError):
    """A tool invocation failed or the tool host channel broke."""

    def __init__(self, tool_name: str, message: str, content: Optional[list] = None):
        self.tool_name = tool_name
        self.content = content or []
        super().__init__(message, error_code="TOOL_EXECUTION_FAILED")


class InferenceServiceError(OrchestratorError):
    """The inference service call failed."""

    def __init__(self, message: str):
        super().__init__(message, error_code="INFERENCE_FAILED")
