"""
NAS target model — who to connect as, where, and how.

Built once at startup from CLI arguments and the optional
``diskcompat.yml`` file, then passed explicitly to every use case.
"""

from __future__ import annotations

import posixpath
import tempfile
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Where DSM keeps its per-model disk compatibility databases
DEFAULT_REMOTE_DB_DIR = "/var/lib/disk-compatibility"

# Unprivileged upload target on the NAS (the SSH user's home)
DEFAULT_STAGING_DIR = "~"

DB_FILENAME_SUFFIX = "_host_v7.db"
MODIFIED_FILENAME_SUFFIX = "_host_v7_MODIFIED.db"

ElevationMode = Literal["interactive", "noninteractive"]


class NasTarget(BaseModel):
    """Connection and layout settings for one appliance."""

    user: str
    host: str
    scratch_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))

    connect_timeout: int = Field(default=10, ge=1)
    command_timeout: int = Field(default=120, ge=1)

    remote_db_dir: str = DEFAULT_REMOTE_DB_DIR
    staging_dir: str = DEFAULT_STAGING_DIR

    # interactive: `sudo` may prompt, needs a terminal (ssh -t)
    # noninteractive: `sudo -n`, needs a NOPASSWD rule for mv on the NAS
    elevation: ElevationMode = "interactive"
    require_model_field: bool = False

    @field_validator("user", "host")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        if "@" in value or any(c.isspace() for c in value):
            raise ValueError(f"invalid value: {value!r}")
        return value

    @field_validator("remote_db_dir", "staging_dir")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        if value != "/":
            value = value.rstrip("/")
        if not value:
            raise ValueError("must not be empty")
        return value

    @property
    def destination(self) -> str:
        """``user@host`` as understood by ssh and scp."""
        return f"{self.user}@{self.host}"

    def db_filename(self, model_id: str) -> str:
        return f"{model_id}{DB_FILENAME_SUFFIX}"

    def modified_filename(self, model_id: str) -> str:
        return f"{model_id}{MODIFIED_FILENAME_SUFFIX}"

    def remote_db_path(self, model_id: str) -> str:
        """Final, root-owned location of the database on the NAS."""
        return posixpath.join(self.remote_db_dir, self.db_filename(model_id))

    def staging_path(self, model_id: str) -> str:
        """Upload target the SSH user can write without elevation."""
        return posixpath.join(self.staging_dir, self.db_filename(model_id))
