# =============================================================================
# Authentication Providers
# =============================================================================
# Operators authenticate with HTTP Basic credentials against the configured
# operator accounts. The authenticated username is the operator identity that
# scopes rewrite job state, so two operators never share a job.
# =============================================================================

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class AuthenticatedUser:
    """An authenticated operator."""

    username: str

    @property
    def operator_id(self) -> str:
        """Key of the operator's job state slot."""
        return self.username


class AuthProvider(ABC):
    """Authentication provider interface."""

    @abstractmethod
    def authenticate(self, username: str, password: str) -> Optional[AuthenticatedUser]:
        """Return the operator for valid credentials, None otherwise."""
        ...


class OperatorAuthProvider(AuthProvider):
    """
    Checks credentials against a fixed set of operator accounts.

    Unknown usernames still go through a password comparison so response
    timing does not reveal which operators exist.
    """

    def __init__(self, accounts: Mapping[str, str]) -> None:
        self._accounts = dict(accounts)

    def authenticate(self, username: str, password: str) -> Optional[AuthenticatedUser]:
        expected = self._accounts.get(username)
        password_match = secrets.compare_digest(
            password.encode("utf-8"), (expected or "").encode("utf-8")
        )
        if expected is not None and password_match:
            return AuthenticatedUser(username=username)
        return None
