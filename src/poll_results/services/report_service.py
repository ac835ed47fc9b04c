"""Abuse reports sent to the report edge function."""

from loguru import logger
from pydantic import ValidationError

from poll_results.lib.rest import DecodeError, RestClient
from poll_results.schemas.poll import Identity, ReportReason, ReportRequest, ReportResult

DEFAULT_REPORT_FUNCTION = "submit-report"


async def submit_report(
    client: RestClient,
    identity: Identity,
    poll_id: str,
    reason: ReportReason | str,
    detail: str | None = None,
    *,
    function: str = DEFAULT_REPORT_FUNCTION,
    token: str | None = None,
) -> ReportResult:
    """Report a poll.

    Reporting the same poll twice succeeds with status ``ok_already_reported``.

    Args:
        client: REST client.
        identity: The reporting user.
        poll_id: Poll being reported.
        reason: Reason code.
        detail: Optional free text, trimmed and capped at 300 characters.
        function: Edge function name.
        token: Shared secret sent as ``X-Report-Token``.

    Raises:
        ValueError: If the reason code is unknown.
        TransportError: If the function call fails.
        DecodeError: If the function's answer is not understood.
    """
    request = ReportRequest(
        poll_id=poll_id,
        reporter_user_id=identity.user_id,
        reason_code=ReportReason(reason),
        reason_text=detail,
    )
    headers = {"X-Report-Token": token} if token else None
    body = await client.invoke(function, request.model_dump(mode="json"), headers=headers)
    try:
        result = ReportResult.model_validate(body)
    except ValidationError as exc:
        msg = f"Unexpected response from {function}"
        logger.error(msg)
        raise DecodeError(msg) from exc
    logger.info("Report for poll {} accepted: {}", poll_id, result.status)
    return result
