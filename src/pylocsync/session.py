"""Session state: the bearer token and room identifier used for every send."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pylocsync.exceptions import InvalidSessionError

_logger = logging.getLogger(__name__)


class SessionContext(BaseModel):
    """Credentials and attribution for location reports.

    Parameters
    ----------
    auth_token : str
        Bearer token handed over by the host application after login.
    session_id : str
        Room identifier the reports are attributed to.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    auth_token: str = Field(min_length=1, repr=False)
    session_id: str = Field(min_length=1)

    @classmethod
    def build(cls, auth_token: str | None, session_id: str | None) -> SessionContext:
        """Validate raw inputs, raising :class:`InvalidSessionError` on missing fields."""
        missing = [
            name
            for name, value in (("auth_token", auth_token), ("session_id", session_id))
            if value is None or not str(value).strip()
        ]
        if missing:
            raise InvalidSessionError(f"Session is missing required field(s): {', '.join(missing)}")
        try:
            return cls(auth_token=auth_token, session_id=session_id)
        except ValidationError as exc:
            raise InvalidSessionError(f"Invalid session: {exc.error_count()} validation error(s)") from exc

    @property
    def authorization(self) -> str:
        """Value of the ``Authorization`` header."""
        return f"Bearer {self.auth_token}"


class SessionState:
    """Single owner of the current :class:`SessionContext`.

    Other components only ever receive the immutable snapshot returned by
    :meth:`snapshot`.
    """

    def __init__(self) -> None:
        self._context: SessionContext | None = None

    @property
    def is_set(self) -> bool:
        return self._context is not None

    def snapshot(self) -> SessionContext | None:
        return self._context

    def set(self, context: SessionContext) -> None:
        _logger.debug("Session set for room %s", context.session_id)
        self._context = context

    def clear(self) -> None:
        if self._context is not None:
            _logger.debug("Session cleared for room %s", self._context.session_id)
        self._context = None
