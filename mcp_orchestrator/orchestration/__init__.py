"""
Session-aware tool-use orchestration loop.
"""

from .loop import (
    OrchestrationLoop,
    OrchestrationResult,
    OrchestrationStep,
    QUOTA_EXCEEDED_MESSAGE,
    RoundState,
)

__all__ = [
    "OrchestrationLoop",
    "OrchestrationResult",
    "OrchestrationStep",
    "QUOTA_EXCEEDED_MESSAGE",
    "RoundState",
]
