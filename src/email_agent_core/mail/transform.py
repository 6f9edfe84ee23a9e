"""
Raw RFC 822 message -> EmailRecord.
"""

from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import parsedate_to_datetime
from typing import Iterable, Optional

import structlog

from email_agent_core.models.email_models import EmailRecord


logger = structlog.get_logger(__name__)


def parse_raw_email(
    raw: bytes,
    uid: Optional[int] = None,
    flags: Optional[Iterable[str]] = None,
) -> EmailRecord:
    """
    Parse a raw message as fetched over IMAP.

    Missing headers become None, a missing subject becomes "(No Subject)",
    and ``message_id`` falls back to the UID.
    """
    message: EmailMessage = BytesParser(policy=policy.default).parsebytes(raw)

    record = EmailRecord(
        uid=uid,
        date=_header_date(message),
        from_addr=_header_text(message.get("From")),
        to=_first_address(message.get("To")),
        subject=_header_text(message.get("Subject")) or "(No Subject)",
        text=_body(message, "plain"),
        html=_body(message, "html"),
        message_id=_header_text(message.get("Message-ID")) or (str(uid) if uid is not None else None),
        flags=list(flags or []),
    )
    logger.debug("Parsed raw email", uid=uid, subject=record.subject)
    return record


def _header_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first_address(value) -> Optional[str]:
    text = _header_text(value)
    if text is None:
        return None
    addresses = getattr(value, "addresses", ())
    if addresses:
        return str(addresses[0])
    return text


def _header_date(message: EmailMessage) -> Optional[datetime]:
    # Depending on the interpreter, an invalid Date raises on header access
    try:
        text = _header_text(message.get("Date"))
        return parsedate_to_datetime(text) if text else None
    except (TypeError, ValueError):
        raw = dict(message.raw_items()).get("Date")
        logger.warning("Unparseable Date header", date=raw)
        return None


def _body(message: EmailMessage, subtype: str) -> str:
    part = message.get_body(preferencelist=(subtype,))
    if part is None:
        return ""
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError):
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")
