import json
import logging
import os
from typing import Optional

from pydantic import ValidationError

from schemas import User

logger = logging.getLogger(__name__)


class SessionContext:
    """
    Owner of the signed-in state.

    The bearer token and user survive restarts (JSON file); the pending
    verification email lives only as long as this object.
    """

    def __init__(self, path: str):
        self.path = path
        self.token: Optional[str] = None
        self.user: Optional[User] = None
        self.verification_email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, encoding="utf-8") as fh:
                doc = json.load(fh)
            if not isinstance(doc, dict):
                raise ValueError("expected a JSON object")
            user = doc.get("user")
            user = User.model_validate(user) if user else None
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            self.token = None
            self.user = None
            return
        self.token = doc.get("token")
        self.user = user
        logger.info("Session loaded (authenticated=%s)", self.is_authenticated)

    def set(self, token: str, user: Optional[User]) -> None:
        self.token = token
        self.user = user
        self._save()
        logger.info("Session started for %s", user.email if user else "unknown user")

    def set_user(self, user: User) -> None:
        self.user = user
        self._save()

    def clear(self) -> None:
        self.token = None
        self.user = None
        if os.path.exists(self.path):
            os.remove(self.path)
        logger.info("Session cleared")

    def close(self) -> None:
        self.verification_email = None

    def _save(self) -> None:
        doc = {"token": self.token, "user": self.user.to_json() if self.user else None}
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(doc, fh)
