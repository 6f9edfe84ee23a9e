"""
Mail account configuration file handling.

The IMAP/SMTP collaborators read their account settings from
``email-agent-core.config.json`` in the working directory. The file is
created with placeholder values by ``email-agent-core init``.
"""

import json
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from email_agent_core.config import settings
from email_agent_core.core.exceptions import EngineError
from email_agent_core.models.email_models import EmailConfig


logger = structlog.get_logger(__name__)


class ConfigNotFoundError(EngineError):
    """Raised when the mail config file does not exist."""

    def __init__(self, path: Path):
        super().__init__(
            f"Missing {path.name}. Run `email-agent-core init`.",
            details={"path": str(path)},
        )
        self.path = path


class ConfigInvalidError(EngineError, ValueError):
    """Raised when the mail config file is not valid JSON or has wrong field types."""


def default_config_path() -> Path:
    return Path.cwd() / settings.EMAIL_CONFIG_FILE


def load_email_config(path: Optional[str | Path] = None) -> EmailConfig:
    """
    Read and validate the mail config file.

    Args:
        path: Config file (default: ``EMAIL_CONFIG_FILE`` in the working directory)

    Raises:
        ConfigNotFoundError: File does not exist
        ConfigInvalidError: File is not valid JSON or fails validation
    """
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        raise ConfigNotFoundError(path)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        config = EmailConfig.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigInvalidError(
            f"Invalid mail config: {path}",
            details={"path": str(path), "error": str(e)},
        ) from e

    logger.debug("Loaded mail config", path=str(path), imap_host=config.imap.host, smtp_host=config.smtp.host)
    return config


def write_default_config(path: Optional[str | Path] = None) -> tuple[Path, bool]:
    """
    Write the placeholder config unless the file already exists.

    Returns:
        Tuple of (config path, whether a new file was created)
    """
    path = Path(path) if path is not None else default_config_path()
    if path.exists():
        return path, False

    path.parent.mkdir(parents=True, exist_ok=True)
    data = EmailConfig().model_dump(by_alias=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    logger.info("Created mail config", path=str(path))
    return path, True


def resolve_user(user: Optional[str], config: EmailConfig) -> str:
    """
    Pick the account name for IMAP/SMTP calls.

    Priority: explicit ``user``, then ``imap.user``, then ``smtp.user``.

    Raises:
        ValueError: No user anywhere
    """
    resolved = user or config.imap.user or config.smtp.user
    if not resolved:
        raise ValueError(
            "No user provided. Pass user='you@example.com' or set "
            '"imap.user" or "smtp.user" in the mail config file.'
        )
    return resolved
