"""Email notification for new contracts via the Resend HTTP API. Best effort only."""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from contractdesk.core.config import Settings
    from contractdesk.schemas.contract import ContractResponse

logger = logging.getLogger(__name__)

# Display labels for contract types in the notification body.
TYPE_LABELS = {
    "target_infiltration": "Target infiltration",
    "data_extraction": "Data extraction",
    "account_takeover": "Account takeover",
    "network_breach": "Network breach",
}


class NotificationNotConfiguredError(Exception):
    """Raised when a notification is requested but Resend settings are missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotificationError(Exception):
    """Raised when the Resend API rejects or fails a send."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _is_configured(settings: Settings) -> bool:
    if settings.RESEND_API_KEY is None:
        return False
    if not settings.RESEND_API_KEY.get_secret_value().strip():
        return False
    return bool(settings.NOTIFY_FROM_EMAIL and settings.NOTIFY_TO_EMAIL)


def build_contract_email(contract: ContractResponse, from_email: str, to_email: str) -> dict[str, Any]:
    """Build the Resend payload for one contract. User-supplied text is HTML-escaped."""
    short_id = contract.id[:8].upper()
    type_label = TYPE_LABELS.get(contract.type, contract.type)
    rows = [
        ("Contract", contract.id),
        ("Target", contract.target),
        ("Type", type_label),
        ("Bounty", contract.bounty or "TBD"),
    ]
    table = "".join(
        f"<tr><td>{html.escape(label)}</td><td>{html.escape(str(value))}</td></tr>"
        for label, value in rows
    )
    body = (
        "<h1>New contract submitted</h1>"
        f"<table>{table}</table>"
        f"<p>{html.escape(contract.details)}</p>"
        "<p>Review this contract in the admin console.</p>"
    )
    return {
        "from": from_email,
        "to": [to_email],
        "subject": f"New contract: {short_id}",
        "html": body,
    }


async def send_contract_notification(contract: ContractResponse, settings: Settings) -> str:
    """
    Send one notification email. Returns the Resend message id.
    Raises NotificationNotConfiguredError or NotificationError.
    """
    if not _is_configured(settings):
        raise NotificationNotConfiguredError(
            "Email notifications are not configured (RESEND_API_KEY, NOTIFY_FROM_EMAIL, NOTIFY_TO_EMAIL)."
        )
    api_key = settings.RESEND_API_KEY.get_secret_value()
    payload = build_contract_email(contract, settings.NOTIFY_FROM_EMAIL, settings.NOTIFY_TO_EMAIL)
    async with httpx.AsyncClient(
        headers={"Authorization": f"Bearer {api_key}"},
        timeout=settings.NOTIFY_REQUEST_TIMEOUT_SEC,
    ) as client:
        try:
            resp = await client.post(settings.RESEND_API_URL, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Resend request failed: {e!s}") from e
    if resp.status_code >= 400:
        try:
            detail = resp.json().get("message") or resp.text[:500]
        except Exception:
            detail = resp.text[:500] if resp.text else "Unknown error"
        raise NotificationError(f"Resend returned {resp.status_code}: {detail}", resp.status_code)
    return str(resp.json().get("id", ""))


async def dispatch_contract_notification(contract: ContractResponse, settings: Settings) -> None:
    """Fire-and-forget wrapper: failures are logged, never raised."""
    try:
        message_id = await send_contract_notification(contract, settings)
    except NotificationNotConfiguredError as e:
        logger.info("Contract notification skipped: %s", e.message)
        return
    except NotificationError as e:
        logger.error(
            "Contract notification failed",
            extra={"contract_id": contract.id, "status_code": e.status_code, "reason": e.message[:500]},
        )
        return
    except Exception:
        logger.exception("Contract notification failed unexpectedly", extra={"contract_id": contract.id})
        return
    logger.info(
        "Contract notification sent",
        extra={"contract_id": contract.id, "message_id": message_id},
    )
