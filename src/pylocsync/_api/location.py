"""Save-location endpoint.

Endpoint:
  - /api/location/save/patient (POST, bearer token)

Each call is a single request/response; nothing is retained between calls.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from pylocsync._constants import AUTH_REJECTED_STATUSES
from pylocsync._transport import HttpResponse, Transport
from pylocsync.config import LocSyncConfig
from pylocsync.exceptions import LocSyncTransportError
from pylocsync.models.fix import PositionFix
from pylocsync.models.outcome import AuthRejected, Delivered, FailureKind, SyncOutcome, TransportFailure
from pylocsync.models.response import SaveLocationResponse
from pylocsync.session import SessionContext

_logger = logging.getLogger(__name__)

_NO_HINT = Delivered(proximity_reached=False, suggested_displacement=None)


def build_location_payload(fix: PositionFix, session: SessionContext) -> dict[str, Any]:
    """Build the JSON body for a save-location request."""
    return {
        "lat": fix.latitude,
        "lng": fix.longitude,
        "roomId": session.session_id,
    }


def build_location_headers(session: SessionContext) -> dict[str, str]:
    return {
        "Authorization": session.authorization,
        "Content-Type": "application/json",
    }


def _parse_success_body(text: str) -> Delivered:
    """Parse a 2xx body.

    The fix is already stored server-side at this point, so anything
    unparseable degrades to "delivered, no hint" instead of an error.
    """
    try:
        body = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        _logger.debug("Save-location body is not JSON: %s", text[:64])
        return _NO_HINT

    if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
        _logger.debug("Save-location body has no 'data' object")
        return _NO_HINT

    try:
        parsed = SaveLocationResponse.model_validate(body)
    except ValidationError:
        _logger.debug("Save-location body failed validation", exc_info=True)
        return _NO_HINT

    return Delivered(
        proximity_reached=parsed.data.arrived_in_fifty,
        suggested_displacement=parsed.data.suggested_displacement,
    )


def parse_save_response(response: HttpResponse) -> SyncOutcome:
    """Map a completed HTTP exchange onto a :data:`SyncOutcome`."""
    if response.status in AUTH_REJECTED_STATUSES:
        return AuthRejected(status_code=response.status)
    if not response.ok:
        return TransportFailure(
            kind=FailureKind.PROTOCOL,
            reason=f"HTTP {response.status}: {response.text[:200]}",
            status_code=response.status,
        )
    return _parse_success_body(response.text)


async def send_location(
    config: LocSyncConfig,
    transport: Transport,
    fix: PositionFix,
    session: SessionContext,
) -> SyncOutcome:
    """Send one fix and return the typed outcome.

    Parameters
    ----------
    config : LocSyncConfig
        Engine configuration.
    transport : Transport
        HTTP transport.
    fix : PositionFix
        The position to report.
    session : SessionContext
        Token and room the report is attributed to.

    Returns
    -------
    SyncOutcome
        ``Delivered``, ``AuthRejected`` or ``TransportFailure``. This
        function never raises for network or server problems.
    """
    endpoint = config.save_path
    payload = build_location_payload(fix, session)
    _logger.debug(
        "Sending location room=%s lat=%s lng=%s",
        session.session_id,
        fix.latitude,
        fix.longitude,
    )

    try:
        response = await transport.post_json(endpoint, payload, headers=build_location_headers(session))
    except LocSyncTransportError as exc:
        _logger.warning("Failed to send location for room %s: %s", session.session_id, exc)
        return TransportFailure(kind=FailureKind.NETWORK, reason=str(exc))

    outcome = parse_save_response(response)
    if isinstance(outcome, AuthRejected):
        _logger.warning(
            "Location rejected for room %s: status=%d (token refused)",
            session.session_id,
            response.status,
        )
    elif isinstance(outcome, TransportFailure):
        _logger.warning(
            "Failed to send location for room %s: status=%d",
            session.session_id,
            response.status,
        )
    else:
        _logger.debug(
            "Location sent for room %s: status=%d proximity=%s distance=%s",
            session.session_id,
            response.status,
            outcome.proximity_reached,
            outcome.suggested_displacement,
        )
    return outcome
