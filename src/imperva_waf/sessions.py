"""Sessions resource: releasing a blocked session."""

from typing import Any, Optional
from urllib.parse import quote, urlencode

from .audit_logger import AuditLogger
from .exceptions import DecodeError, EmptyResponseError, ResultCodeError
from .models import ApiResult
from .normalize import (
    decode_int,
    decode_str,
    parse_json,
    require_object,
)
from .transport import Transport


COMPONENT = "sessions"

RELEASE_PATH = "/v3/sites/{site_id}/sessions/{session_id}/release"


def _decode_result_item(item: Any) -> ApiResult:
    item = require_object(item, "session release result")
    message = item.get("res_message")
    if message is None:
        message = item.get("message")
    return ApiResult(
        res=decode_int(item.get("res"), "res"),
        res_message=decode_str(message, "res_message"),
        debug_info=item.get("debug_info"),
    )


def parse_release_response(raw: bytes) -> ApiResult:
    """
    Decode a session release response.

    Shapes, in order:
        ``{"data": [result, ...]}``  the first result is returned
        ``{"res": .., "res_message": ..}``  a bare result object

    Raises:
        EmptyResponseError: If ``data`` is an empty array
        ResultCodeError: If the result reports a non-zero code
        DecodeError: If neither shape matches
    """
    payload = parse_json(raw, "session release")
    payload = require_object(payload, "session release response")

    if isinstance(payload.get("data"), list):
        if not payload["data"]:
            raise EmptyResponseError("empty data response for session release")
        result = _decode_result_item(payload["data"][0])
    elif "res" in payload or "res_message" in payload:
        result = _decode_result_item(payload)
    else:
        raise DecodeError(
            "could not decode session release response",
            tried=["data", "<top-level result>"],
        )

    if result.res != 0:
        raise ResultCodeError("release session", result.res, result.res_message)
    return result


class SessionsResource:
    """Session operations scoped to a site."""

    def __init__(
        self,
        transport: Transport,
        account_id: Optional[str] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._transport = transport
        self._account_id = account_id
        self._logger = logger

    async def release_session(self, site_id: int, session_id: str) -> ApiResult:
        """
        Release (unblock) a session. Sent as a POST with no body.

        Args:
            site_id: Site the session belongs to
            session_id: Opaque session identifier
        """
        path = RELEASE_PATH.format(site_id=site_id, session_id=quote(session_id, safe=""))
        if self._account_id:
            path += "?" + urlencode({"caid": self._account_id})

        raw = await self._transport.post(path)
        result = parse_release_response(raw)
        if self._logger:
            self._logger.info(COMPONENT, "Session released", {
                "site_id": site_id,
                "session_id": session_id,
            })
        return result
