"""
Session Store

Persists per-agent authentication state between runs and detects when an
agent landed on a login page instead of its chat front-end.

Session handles are opaque to the rest of the package: the store only
answers "does a session exist" and loads or saves the blob.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .driver import SessionHandle

logger = logging.getLogger(__name__)

# URL fragments that indicate an authentication page
DEFAULT_LOGIN_PATTERNS: tuple[str, ...] = (
    "login",
    "signin",
    "sign-in",
    "auth",
    "authenticate",
    "sso",
    "oauth",
    "account/login",
)

_LOGIN_TITLE_PATTERNS = ("log in", "login", "sign in", "signin", "authenticate")


@dataclass
class SessionConfig:
    """
    Session persistence configuration.
    """

    # Session persistence directory
    sessions_dir: Path = Path("sessions")

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Create configuration from environment variables."""
        return cls(sessions_dir=Path(os.getenv("SESSIONS_DIR", "sessions")))


class SessionStore:
    """
    File-backed store of session handles keyed by agent id.

    Each handle lives in ``<sessions_dir>/<agent_id>-session.json``.
    """

    def __init__(self, config: Optional[SessionConfig] = None):
        """
        Initialize session store.

        Args:
            config: Session configuration (uses env if None)
        """
        self.config = config or SessionConfig.from_env()

    def path_for(self, agent_id: str) -> Path:
        """Get the storage path for an agent's session."""
        return self.config.sessions_dir / f"{agent_id}-session.json"

    def exists(self, agent_id: str) -> bool:
        return self.path_for(agent_id).is_file()

    def load(self, agent_id: str) -> Optional[SessionHandle]:
        """
        Load a stored session.

        Returns:
            The session handle, or None if missing or unreadable
        """
        path = self.path_for(agent_id)
        if not path.is_file():
            return None

        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                f"Ignoring unreadable session file {path}: {e}",
                extra={"agent_id": agent_id},
            )
            return None

    def save(self, agent_id: str, handle: SessionHandle) -> Path:
        """
        Save a session handle.

        The file is written next to its final location and renamed into
        place, so a crash never leaves a half-written session behind.
        """
        path = self.path_for(agent_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(handle, indent=2), encoding="utf-8")
        tmp_path.replace(path)

        logger.info(f"Session saved to {path}", extra={"agent_id": agent_id})
        return path


def is_login_page(
    url: str,
    page_title: str = "",
    patterns: Sequence[str] = DEFAULT_LOGIN_PATTERNS,
) -> bool:
    """
    Check if URL or title appears to be a login page.

    Only the path and host are inspected for URL patterns; query strings
    often carry words like "auth" on ordinary pages.

    Args:
        url: Page URL
        page_title: Page title
        patterns: URL fragments that indicate a login page

    Returns:
        True if page appears to be a login page
    """
    url_lower = url.lower().split("?", 1)[0].split("#", 1)[0]
    title_lower = page_title.lower()

    for pattern in patterns:
        if pattern in url_lower:
            return True

    for pattern in _LOGIN_TITLE_PATTERNS:
        if pattern in title_lower:
            return True

    return False
