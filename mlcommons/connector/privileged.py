"""Privileged execution boundary for network egress.

Connector configuration comes from users and is untrusted, so outbound calls
are not made with the caller's ambient rights. Instead a ``PrivilegeGate``
runs the network action and hands it an ``EgressPermit``; the HTTP client
factory refuses to hand out a client without a live permit, and the gate
revokes the permit as soon as the action returns.
"""

from abc import ABC, abstractmethod
from typing import Callable, TypeVar

import structlog

logger = structlog.get_logger("connector.privileged")

T = TypeVar("T")


class EgressPermit:
    """Capability granting network egress for the duration of one action."""

    __slots__ = ("scope", "_active")

    def __init__(self, scope: str):
        self.scope = scope
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def revoke(self) -> None:
        self._active = False

    def __repr__(self) -> str:
        return f"EgressPermit(scope={self.scope!r}, active={self._active})"


def require_permit(permit: object) -> EgressPermit:
    """Return ``permit`` if it is a live egress permit, else raise ``PermissionError``."""
    if not isinstance(permit, EgressPermit) or not permit.active:
        raise PermissionError("Network egress requires an active egress permit")
    return permit


class PrivilegeGate(ABC):
    """Runs an action with elevated rights distinct from the caller's."""

    @abstractmethod
    def do_privileged(self, action: Callable[[EgressPermit], T]) -> T:
        """Run ``action`` with a fresh permit and return its result."""
        pass


class SandboxPrivilegeGate(PrivilegeGate):
    """Default gate: issues a scoped permit and revokes it on every exit path."""

    def __init__(self, scope: str = "connector"):
        self.scope = scope

    def do_privileged(self, action: Callable[[EgressPermit], T]) -> T:
        permit = EgressPermit(self.scope)
        logger.debug("Granted egress permit", scope=self.scope)
        try:
            return action(permit)
        finally:
            permit.revoke()
