"""genapp configuration.

Typed settings for a generation run.  Pydantic v2 validates them at
construction time and serialises them to/from JSON or environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.scaffolder.models import DEFAULT_TEMPLATE_DIR

_TRUE_VALUES = {"1", "true", "yes", "on"}


class GenerateConfig(BaseModel):
    """Settings of one generation run.

    Instances are typically created by the CLI entry point, either from
    arguments or from ``GENAPP_*`` environment variables.
    """

    template_path: Path = Field(
        default=DEFAULT_TEMPLATE_DIR, description="Root directory of the template models"
    )
    manifest: Optional[Path] = Field(
        default=None, description="Models manifest; defaults to <template_path>/models.yaml"
    )
    output_dir: Path = Field(default=Path("."), description="Directory files are generated into")
    model: str = Field(default="rest_api", min_length=1, description="Model to apply")
    max_workers: int = Field(default=4, ge=1, description="Sources applied concurrently")
    fail_fast: bool = Field(default=True, description="Stop at the first failing source")

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def manifest_path(self) -> Path:
        """The models manifest to register models from."""
        return self.manifest or (self.template_path / "models.yaml")

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "GenerateConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "GenerateConfig":
        """Build a ``GenerateConfig`` from environment variables.

        Recognised variables (all optional):
            GENAPP_TEMPLATE_PATH, GENAPP_MANIFEST, GENAPP_OUTPUT_DIR,
            GENAPP_MODEL, GENAPP_MAX_WORKERS, GENAPP_FAIL_FAST.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("GENAPP_TEMPLATE_PATH"):
            kwargs["template_path"] = Path(os.environ["GENAPP_TEMPLATE_PATH"])
        if os.environ.get("GENAPP_MANIFEST"):
            kwargs["manifest"] = Path(os.environ["GENAPP_MANIFEST"])
        if os.environ.get("GENAPP_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["GENAPP_OUTPUT_DIR"])
        if os.environ.get("GENAPP_MODEL"):
            kwargs["model"] = os.environ["GENAPP_MODEL"]
        if os.environ.get("GENAPP_MAX_WORKERS"):
            kwargs["max_workers"] = int(os.environ["GENAPP_MAX_WORKERS"])
        if os.environ.get("GENAPP_FAIL_FAST"):
            kwargs["fail_fast"] = os.environ["GENAPP_FAIL_FAST"].strip().lower() in _TRUE_VALUES
        return cls(**kwargs)
