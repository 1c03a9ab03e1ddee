"""Configuration module for the notes engine."""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pygments.styles import get_all_styles

from notesmd.exceptions import ConfigurationError

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, lives alongside the user's notes
_USER_ENV = Path.home() / ".notesmd" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NotesConfig(BaseModel):
    """Configuration for the notes engine.

    Built once at process start and shared by every component; frozen so
    nothing can mutate it while requests are being served.
    """

    # Env-derived defaults go through validation like explicit overrides
    model_config = ConfigDict(frozen=True, validate_default=True)

    # Storage configuration
    notes_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTESMD_NOTES_DIR", "notes"))
    )
    # Uploaded files live in a subdirectory of the notes directory
    attachments_subdir: str = Field(
        default_factory=lambda: os.getenv("NOTESMD_ATTACHMENTS_SUBDIR", "att")
    )
    # Pygments style used for highlighted code blocks
    code_style: str = Field(
        default_factory=lambda: os.getenv("NOTESMD_CODE_STYLE", "monokai")
    )
    # Route prefix that {PageName} links point at
    view_route: str = Field(
        default_factory=lambda: os.getenv("NOTESMD_VIEW_ROUTE", "/view/")
    )
    # Prepend a table of contents to rendered notes that have headings
    toc_enabled: bool = Field(
        default_factory=lambda: _env_flag("NOTESMD_TOC_ENABLED", "true")
    )
    tab_width: int = Field(
        default_factory=lambda: os.getenv("NOTESMD_TAB_WIDTH", "2")
    )

    @model_validator(mode="after")
    def _validate_config(self) -> "NotesConfig":
        """Reject settings that would only fail later, mid-request."""
        if self.code_style not in set(get_all_styles()):
            raise ValueError(f"unknown code style '{self.code_style}'")
        if self.tab_width < 1:
            raise ValueError("tab_width must be >= 1")
        subdir = self.attachments_subdir
        if not subdir or subdir in (".", "..") or "/" in subdir or "\\" in subdir:
            raise ValueError(
                "attachments_subdir must be a single directory name"
            )
        return self

    @property
    def attachments_dir(self) -> Path:
        """Directory holding uploaded attachments."""
        return self.notes_dir / self.attachments_subdir


def load_config(**overrides: Any) -> NotesConfig:
    """Build a validated configuration, env defaults plus ``overrides``.

    Raises:
        ConfigurationError: If any setting is invalid.
    """
    try:
        cfg = NotesConfig(**overrides)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        key = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid configuration: {first.get('msg', str(e))}", config_key=key
        ) from e
    logger.debug(
        f"Configuration loaded: notes_dir={cfg.notes_dir}, "
        f"code_style={cfg.code_style}, toc_enabled={cfg.toc_enabled}"
    )
    return cfg


# Global config instance; a bad environment fails here with ConfigurationError
config = load_config()
