"""
Data models exchanged with the mail collaborators.

EmailRecord is what a fetcher hands to the agents; SendEmailOptions and
SendEmailResult describe one outgoing message. ImapConfig/SmtpConfig mirror
the on-disk ``email-agent-core.config.json`` file.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EmailRecord(BaseModel):
    """
    One fetched email, normalized from its raw RFC 822 form.

    Serialized keys (``from``, ``messageId``) follow the config/JSON
    convention; Python code uses the snake_case attribute names.
    """
    model_config = ConfigDict(populate_by_name=True)

    uid: Optional[int] = Field(default=None, description="Mailbox UID")
    date: Optional[datetime] = Field(default=None, description="Date header")
    from_addr: Optional[str] = Field(default=None, alias="from", description="From header text")
    to: Optional[str] = Field(default=None, description="First To header text")
    subject: str = Field(default="(No Subject)")
    text: str = Field(default="", description="Plain-text body")
    html: str = Field(default="", description="HTML body")
    message_id: Optional[str] = Field(default=None, alias="messageId")
    flags: list[str] = Field(default_factory=list, description="IMAP flags, e.g. \\Seen")


class SendEmailOptions(BaseModel):
    """Options for sending an email. ``user`` falls back to the configured account."""

    to: str
    subject: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None
    user: Optional[str] = None


class SendEmailResult(BaseModel):
    """Normalized result from sending an email."""
    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(..., alias="messageId")
    accepted: list[str] = Field(default_factory=list)
    rejected: list[str] = Field(default_factory=list)


class ImapConfig(BaseModel):
    host: str = "imap.example.com"
    port: int = 993
    tls: bool = True
    user: str = ""
    password: str = Field(default="", alias="pass")

    model_config = ConfigDict(populate_by_name=True)


class SmtpConfig(BaseModel):
    host: str = "smtp.example.com"
    port: int = 587
    secure: bool = False
    user: str = ""
    password: str = Field(default="", alias="pass")

    model_config = ConfigDict(populate_by_name=True)


class EmailConfig(BaseModel):
    """Contents of ``email-agent-core.config.json``."""

    imap: ImapConfig = Field(default_factory=ImapConfig)
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
