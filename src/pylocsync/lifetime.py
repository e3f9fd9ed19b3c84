"""Boundary to the OS process-lifetime mechanism.

A host registers the engine with its platform (foreground service, background
task scheduler, systemd unit...) so that the process is restarted when the
OS reclaims it. Nothing is persisted: after a restart the host must call
``start()`` again with fresh credentials.
"""

from __future__ import annotations

import logging
from typing import Protocol

_logger = logging.getLogger(__name__)


class LifetimeRegistrar(Protocol):
    def register(self) -> None:
        """Ask the OS to keep (or restart) the hosting process."""
        ...

    def unregister(self) -> None:
        """Withdraw the keep-alive request."""
        ...


class NullLifetimeRegistrar:
    """Registrar for hosts without a restart contract (tests, scripts)."""

    def __init__(self) -> None:
        self.registered = False

    def register(self) -> None:
        _logger.debug("Lifetime registration requested (no-op)")
        self.registered = True

    def unregister(self) -> None:
        if self.registered:
            _logger.debug("Lifetime registration withdrawn (no-op)")
        self.registered = False
