"""
Interfaces of the mail collaborators.

Fetching and sending are performed by external IMAP/SMTP clients; the core
only depends on these structural types.
"""

from typing import Optional, Protocol, runtime_checkable

from email_agent_core.models.email_models import EmailRecord, SendEmailOptions, SendEmailResult


@runtime_checkable
class EmailFetcher(Protocol):
    async def fetch_latest(self, limit: int = 10, user: Optional[str] = None) -> list[EmailRecord]:
        """Return up to ``limit`` most recent emails, newest first."""
        ...


@runtime_checkable
class EmailSender(Protocol):
    async def send(self, options: SendEmailOptions) -> SendEmailResult:
        """Send one email and report accepted/rejected recipients."""
        ...
