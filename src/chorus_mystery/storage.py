"""
Session persistence for the mystery engine.

Saves and loads SessionState as JSON so a case survives process restarts.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .session import SessionState

logger = logging.getLogger("chorus-mystery")


class SessionStorage:
    """
    Handles session state persistence to disk.

    Each session is one JSON file:
    {data_dir}/sessions/{session_id}.json
    """

    VERSION = "1.0"

    def __init__(self, data_dir: Path) -> None:
        """
        Initialize the storage.

        Args:
            data_dir: Root directory for saved data
        """
        self.data_dir = Path(data_dir)
        self._sessions_dir = self.data_dir / "sessions"

    def _session_path(self, session_id: str) -> Path:
        return self._sessions_dir / f"{session_id}.json"

    def save(self, session_id: str, state: SessionState) -> Path:
        """
        Save session state to disk.

        Args:
            session_id: Unique session identifier
            state: The session snapshot

        Returns:
            Path of the written file
        """
        self._sessions_dir.mkdir(parents=True, exist_ok=True)
        path = self._session_path(session_id)

        envelope = {
            "version": self.VERSION,
            "session_id": session_id,
            "last_updated": datetime.now().isoformat(),
            "state": state.model_dump(mode="json"),
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(envelope, f, indent=2, ensure_ascii=False)

        logger.info(f"Saved session {session_id} to {path}")
        return path

    def load(self, session_id: str) -> Optional[SessionState]:
        """
        Load session state from disk.

        Args:
            session_id: The session ID to load

        Returns:
            The saved state, or None if missing or unreadable
        """
        path = self._session_path(session_id)
        if not path.exists():
            logger.debug(f"No saved session found at {path}")
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                envelope = json.load(f)
            state = SessionState.model_validate(envelope["state"])
        except (json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
            logger.error(f"Failed to load session {session_id}: {e}")
            return None

        logger.info(f"Loaded session {session_id} from {path}")
        return state

    def list_sessions(self) -> list[str]:
        """IDs of all saved sessions, sorted."""
        if not self._sessions_dir.exists():
            return []
        return sorted(path.stem for path in self._sessions_dir.glob("*.json"))

    def delete(self, session_id: str) -> bool:
        """
        Delete a saved session.

        Returns:
            True if a file was removed, False if none existed
        """
        path = self._session_path(session_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted saved session {session_id}")
        return True


__all__ = [
    "SessionStorage",
]
