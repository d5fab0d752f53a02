"""Source models: which files a plugin is generated into, and from what.

A ``Model`` is a named set of ``Source`` entries sharing one template
directory.  Each ``Source`` holds the fully preprocessed template body of one
target file, its permission bits and its regeneration policy.  ``Models`` is
the registry callers build once and hand to the ``Generator``.

Models can be registered in code::

    models = Models()
    models.create("rest_api", "templates") \\
        .source("main.py", 0o644, "#", "main.py", reset=False) \\
        .source("plugin.py", 0o644, "#", "plugin.py", reset=True)

or declared in a YAML manifest (see ``Models.load_manifest``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.errors import TemplateSourceError, UnknownModelError
from src.scaffolder.macros import add_banner, preprocess, target_name
from src.utils import load_yaml


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------


class Source(BaseModel):
    """One generatable file.

    ``reset=True`` marks a machine-owned file, regenerated on every run.
    ``reset=False`` marks scaffolding: created once, then left to the user.
    """

    model_config = ConfigDict(frozen=True)

    reset: bool = Field(..., description="Regenerate on every run")
    template: str = Field(..., description="Preprocessed template body, banner included")
    rights: int = Field(default=0o644, ge=0, le=0o7777, description="Permission bits")


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class Model:
    """A named collection of sources, keyed by target path."""

    def __init__(self, name: str, model_path: str | Path) -> None:
        self.name = name
        self.model_path = Path(model_path)
        self.sources: dict[str, Source] = {}

    def __repr__(self) -> str:
        return f"Model(name={self.name!r}, model_path={str(self.model_path)!r}, sources={len(self.sources)})"

    def __len__(self) -> int:
        return len(self.sources)

    def __iter__(self) -> Iterator[tuple[str, Source]]:
        return iter(self.sources.items())

    def source(
        self,
        file: str,
        rights: int,
        comment: str,
        tmpl_file: str,
        reset: bool,
    ) -> "Model":
        """Register the source of *file*, read from *tmpl_file*.

        Args:
            file: Target path, relative to the generation directory.
            rights: Permission bits applied after writing.
            comment: Line comment prefix of the target language (``"#"``,
                ``"//"``...).  Empty for formats without comments: no banner
                is added.
            tmpl_file: Template file, relative to ``model_path``.
            reset: Regenerate on every run.  With a non-empty *comment* the
                target becomes ``generated-<file>``.

        Returns:
            The model itself, so registrations can be chained.

        Raises:
            TemplateSourceError: The template file is missing or unreadable.
        """
        tmpl_path = self.model_path / tmpl_file
        if not tmpl_path.is_file():
            raise TemplateSourceError(tmpl_path, "template source file is not accessible")
        try:
            raw = tmpl_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateSourceError(tmpl_path, f"not a readable document. {exc}") from exc

        body = add_banner(preprocess(raw), comment, reset)
        self.sources[target_name(file, comment, reset)] = Source(
            reset=reset, template=body, rights=rights
        )
        return self


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class ManifestSource(BaseModel):
    """A ``sources`` entry of a models manifest."""

    file: str
    template: str = Field(default="", description="Defaults to ``file``")
    rights: int = Field(default=0o644, ge=0, le=0o7777, description="Quoted octal string, e.g. \"0755\"")
    comment: str = Field(default="")
    reset: bool = Field(default=False)

    @field_validator("rights", mode="before")
    @classmethod
    def octal_rights(cls, value: Any) -> Any:
        # "0755" / "755" / "0o755" are octal; YAML 1.1 already turns 0755 into 493.
        if isinstance(value, str):
            text = value.strip().lower()
            text = text[2:] if text.startswith("0o") else text
            return int(text, 8)
        # An unquoted 755 reaches us as the decimal 755 (0o1363).
        if isinstance(value, int) and value > 0o777 and set(str(value)) <= set("01234567"):
            raise ValueError(f"ambiguous rights {value}: quote octal permissions, e.g. \"0{value}\"")
        return value

    @field_validator("comment", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ManifestModel(BaseModel):
    """A model entry of a models manifest."""

    path: str = Field(default="", description="Template directory, defaults to the model name")
    sources: list[ManifestSource] = Field(default_factory=list)


class Manifest(BaseModel):
    """A models manifest: ``{models: {name: {path, sources: [...]}}}``."""

    models: dict[str, ManifestModel] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Models registry
# ---------------------------------------------------------------------------


class Models:
    """Registry of source models, keyed by name.

    Registering a name twice replaces the first model.
    """

    def __init__(self) -> None:
        self._models: dict[str, Model] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __len__(self) -> int:
        return len(self._models)

    def names(self) -> list[str]:
        return sorted(self._models)

    def create(self, name: str, template_path: str | Path, model_dir: str | None = None) -> Model:
        """Create (or replace) the model *name*.

        Its templates are read from ``template_path/<model_dir or name>``.
        """
        model = Model(name, Path(template_path) / (model_dir or name))
        self._models[name] = model
        return model

    def get(self, name: str) -> Model:
        """Return the model registered as *name*.

        Raises:
            UnknownModelError: No such model.
        """
        try:
            return self._models[name]
        except KeyError:
            raise UnknownModelError(name) from None

    def load_manifest(self, manifest: Union[str, Path], template_path: str | Path | None = None) -> list[str]:
        """Register every model declared in the YAML *manifest*.

        Args:
            manifest: Path of the manifest file.
            template_path: Template root; defaults to the manifest directory.

        Returns:
            Names of the registered models, in manifest order.

        Raises:
            TemplateSourceError: The manifest is unreadable or invalid, or one
                of its templates is missing.
        """
        manifest_path = Path(manifest)
        try:
            raw = load_yaml(manifest_path)
        except (OSError, ValueError) as exc:
            raise TemplateSourceError(manifest_path, f"unreadable models manifest. {exc}") from exc

        try:
            parsed = Manifest.model_validate(raw or {})
        except ValidationError as exc:
            raise TemplateSourceError(manifest_path, f"invalid models manifest. {exc}") from exc

        root = Path(template_path) if template_path is not None else manifest_path.parent
        for name, spec in parsed.models.items():
            model = self.create(name, root, spec.path or None)
            for entry in spec.sources:
                model.source(entry.file, entry.rights, entry.comment, entry.template or entry.file, entry.reset)
        return list(parsed.models)


# ---------------------------------------------------------------------------
# Built-in models
# ---------------------------------------------------------------------------

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_MANIFEST = DEFAULT_TEMPLATE_DIR / "models.yaml"

#: Name of the model scaffolding a new plugin descriptor.
DESCRIPTOR_MODEL = "descriptor"


def builtin_models(template_path: str | Path | None = None, manifest: str | Path | None = None) -> Models:
    """Return a registry holding the models of *manifest*.

    Defaults to the manifest and templates shipped with genapp.
    """
    models = Models()
    models.load_manifest(manifest or DEFAULT_MANIFEST, template_path or None)
    return models


def register_descriptor_model(
    models: Models, plugin_name: str, template_path: str | Path | None = None
) -> Model:
    """Register the model writing ``<plugin_name>.yaml``, a starter descriptor.

    The descriptor is scaffolding: created once, never overwritten.
    """
    root = Path(template_path) if template_path is not None else DEFAULT_TEMPLATE_DIR
    return models.create(DESCRIPTOR_MODEL, root).source(
        f"{plugin_name}.yaml", 0o644, "#", "plugin.yaml.j2", reset=False
    )
