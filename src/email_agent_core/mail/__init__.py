"""
Mail collaborators: config file, fetch/send interfaces, raw message parsing.
"""

from email_agent_core.mail.config import (
    ConfigInvalidError,
    ConfigNotFoundError,
    default_config_path,
    load_email_config,
    resolve_user,
    write_default_config,
)
from email_agent_core.mail.protocols import EmailFetcher, EmailSender
from email_agent_core.mail.transform import parse_raw_email

__all__ = [
    "EmailFetcher",
    "EmailSender",
    "load_email_config",
    "write_default_config",
    "default_config_path",
    "resolve_user",
    "parse_raw_email",
    "ConfigNotFoundError",
    "ConfigInvalidError",
]
