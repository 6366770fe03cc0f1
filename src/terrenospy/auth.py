"""Admin panel session.

The admin panel has no authentication backend: the username/password pair
is a configured constant and the check happens in-process.
"""

import hmac
import logging
from typing import Optional

from .config import Settings

logger = logging.getLogger(__name__)


class AdminSession:
    """Login state of the admin panel for one process."""

    def __init__(self, settings: Settings):
        self._username = settings.admin_username
        self._password = settings.admin_password
        self.username: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.username is not None

    def login(self, username: str, password: str) -> bool:
        """Check credentials and open the session on success."""
        username = (username or "").strip()
        password = (password or "").strip()
        valid = hmac.compare_digest(
            username.encode("utf-8"), self._username.encode("utf-8")
        ) & hmac.compare_digest(password.encode("utf-8"), self._password.encode("utf-8"))
        if not valid:
            logger.warning(f"Rejected admin login for {username!r}")
            self.username = None
            return False
        self.username = username
        logger.info(f"Admin {username} logged in")
        return True

    def logout(self) -> None:
        if self.username:
            logger.info(f"Admin {self.username} logged out")
        self.username = None
