"""Pydantic v2 models for plugin descriptor documents.

A plugin descriptor is the YAML document a plugin author maintains to declare
the plugin name, its runtime, the flags accepted by each task and the objects
it manages.  The scaffolder only reads it: templates receive the parsed
``PluginDescriptor`` together with the raw document text (see ``YamlData``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.errors import DescriptorError


# ---------------------------------------------------------------------------
# Flags, tasks and objects
# ---------------------------------------------------------------------------

class FlagDescriptor(BaseModel):
    """A single flag accepted by a task or an object."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    help: str = Field(default="", description="Help text shown by the CLI")
    required: bool = Field(default=False)
    hidden: bool = Field(default=False)
    default: Optional[str] = Field(default=None, description="Default value, if any")
    secure: bool = Field(default=False, description="Value must be stored as a secret")
    envar: Optional[str] = Field(default=None, description="Environment variable fallback")
    group: Optional[str] = Field(default=None)
    actions: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("only-for-actions", "actions"),
        description="Actions this flag is restricted to. Empty means every action.",
    )

    @field_validator("actions", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("default", mode="before")
    @classmethod
    def default_as_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


def _empty_mapping(value: Any) -> Any:
    # ``flags:`` with no entries, or ``name:`` with no options, parses as None.
    if value is None:
        return {}
    if isinstance(value, dict):
        return {key: ({} if item is None else item) for key, item in value.items()}
    return value


class TaskDescriptor(BaseModel):
    """Flags attached to one plugin task (``common``, ``create``, ``update``...)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    help: str = Field(default="")
    flags: dict[str, FlagDescriptor] = Field(default_factory=dict)

    @field_validator("flags", mode="before")
    @classmethod
    def normalize_flags(cls, value: Any) -> Any:
        return _empty_mapping(value)


class ObjectDescriptor(BaseModel):
    """An object managed by the plugin and the flags describing it."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    help: str = Field(default="")
    actions: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("default-actions", "actions"),
        description="Actions supported by the object. Empty means the default set.",
    )
    identified_by_flag: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("identified_by_flag", "identified-by-flag")
    )
    flags: dict[str, FlagDescriptor] = Field(default_factory=dict)

    @field_validator("flags", mode="before")
    @classmethod
    def normalize_flags(cls, value: Any) -> Any:
        return _empty_mapping(value)

    @field_validator("actions", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class RuntimeDescriptor(BaseModel):
    """How the plugin is started."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    docker_image: str = Field(default="")
    service_type: str = Field(default="")
    service: dict[str, Any] = Field(default_factory=dict)

    @field_validator("service", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class PluginDescriptor(BaseModel):
    """The whole plugin descriptor document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., validation_alias=AliasChoices("plugin", "name"))
    version: str = Field(default="")
    description: str = Field(default="")
    runtime: RuntimeDescriptor = Field(default_factory=RuntimeDescriptor)
    created_flag_file: str = Field(default="")
    tasks: dict[str, TaskDescriptor] = Field(
        default_factory=dict, validation_alias=AliasChoices("task_flags", "actions", "tasks")
    )
    objects: dict[str, ObjectDescriptor] = Field(default_factory=dict)

    @field_validator("tasks", "objects", mode="before")
    @classmethod
    def normalize_sections(cls, value: Any) -> Any:
        return _empty_mapping(value)

    @field_validator("version", mode="before")
    @classmethod
    def version_as_text(cls, value: Any) -> Any:
        # ``version: 0.1`` is a float once parsed.
        return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Rendering context
# ---------------------------------------------------------------------------

class YamlData(BaseModel):
    """The context templates are rendered with.

    ``yaml`` is the parsed descriptor; ``yaml_data`` the document text it was
    parsed from, so templates can embed it verbatim.
    """

    model_config = ConfigDict(frozen=True)

    yaml: PluginDescriptor
    yaml_data: str = Field(default="")

    def context(self) -> dict[str, Any]:
        """Return the variables exposed to templates."""
        return {"yaml": self.yaml, "yaml_data": self.yaml_data}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def parse_descriptor(raw: str | bytes, source: str | Path = "<string>") -> YamlData:
    """Parse descriptor text into a ``YamlData`` context.

    Raises:
        DescriptorError: The bytes are not UTF-8, or the text is not YAML,
            not a mapping, or does not validate against
            ``PluginDescriptor``.
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
    except UnicodeDecodeError as exc:
        raise DescriptorError(source, f"not UTF-8 text ({exc.reason})") from exc

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DescriptorError(source, str(exc)) from exc

    if not isinstance(document, dict):
        raise DescriptorError(source, "the document root must be a mapping")

    try:
        descriptor = PluginDescriptor.model_validate(document)
    except ValidationError as exc:
        raise DescriptorError(source, str(exc)) from exc

    return YamlData(yaml=descriptor, yaml_data=text)


def load_descriptor(path: str | Path) -> YamlData:
    """Read and parse the descriptor stored at *path*."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise DescriptorError(path, exc.strerror or str(exc)) from exc

    return parse_descriptor(raw, path)


def descriptor_from_name(name: str) -> YamlData:
    """Build a context holding nothing but a plugin name.

    Used to scaffold a brand new descriptor, before any document exists.
    """
    return YamlData(yaml=PluginDescriptor(name=name), yaml_data="")
