"""Persisting the signed-in account between CLI runs."""

import json
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .logging import get_logger
from .models import AuthSession

log = get_logger("session")

SESSION_FILE = "session.json"


class SessionStore:
    """Stores the current AuthSession as JSON in the data directory."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / SESSION_FILE

    def load(self) -> AuthSession | None:
        """Return the saved session, or None when there is none."""
        if not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                return AuthSession.model_validate(json.load(f))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            log.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

    def save(self, session: AuthSession) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(session.model_dump(mode="json"), f, indent=2)
        self.path.chmod(0o600)

    def clear(self) -> bool:
        """Forget the saved session. Returns whether one existed."""
        if not self.path.exists():
            return False
        self.path.unlink()
        return True
