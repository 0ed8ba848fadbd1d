"""
Caller profile lookup and system prompt assembly.

When ``PROFILE_API_URL`` is configured, the caller's profile record is
fetched for every orchestration round and rendered into the system prompt
so the model can tailor its answers. Lookup failures never fail the round.
"""

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from .config import config

logger = logging.getLogger(__name__)


class ProfileClient:
    """Fetches caller profile records from an HTTP endpoint."""

    def __init__(self, url_template: Optional[str] = None, timeout: Optional[float] = None):
        """
        Args:
            url_template: URL containing a ``{session_id}`` placeholder; the
                id is percent-encoded as a single path segment.
                Profile lookup is disabled when empty.
            timeout: Request timeout in seconds.
        """
        self.url_template = (
            url_template if url_template is not None else config.prompt.profile_api_url
        )
        self.timeout = timeout or config.prompt.profile_api_timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url_template)

    def fetch_sync(self, session_id: str) -> Optional[dict[str, Any]]:
        """Blocking profile fetch. Returns None on any failure."""
        if not self.enabled:
            return None

        url = self.url_template.format(session_id=quote(session_id, safe=""))
        try:
            response = requests.get(
                url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Profile lookup for session {session_id} failed: {e}")
            return None
        except ValueError as e:
            logger.error(f"Profile response for session {session_id} is not JSON: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring non-object profile for session {session_id}")
            return None
        return data

    async def fetch(self, session_id: str) -> Optional[dict[str, Any]]:
        """Fetch a profile without blocking the event loop."""
        if not self.enabled:
            return None
        return await asyncio.to_thread(self.fetch_sync, session_id)


def build_system_prompt(
    base_prompt: Optional[str],
    profile: Optional[dict[str, Any]] = None,
) -> Optional[str]:
    """
    Combine the base system prompt with the caller's profile.

    Returns:
        The prompt text, or None if there is nothing to send.
    """
    sections = []
    if base_prompt and base_prompt.strip():
        sections.append(base_prompt.strip())

    if profile:
        lines = [
            f"- {key}: {value}"
            for key, value in profile.items()
            if value is not None and not isinstance(value, (dict, list))
        ]
        if lines:
            sections.append("Caller profile:\n" + "\n".join(lines))

    return "\n\n".join(sections) if sections else None
