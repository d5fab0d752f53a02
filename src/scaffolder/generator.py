"""Generation driver.

Applies every ``Source`` of a registered ``Model`` to a target directory:

* a file that exists and is not ``reset`` is left alone, forever;
* anything else is compiled, rendered, written and chmod-ed.

Sources are independent of each other, so a batch applies them concurrently
(bounded by ``max_workers``) in unspecified order.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from rich.markup import escape as markup_escape

from src.descriptor.models import YamlData
from src.errors import GenerationIOError, ScaffoldError
from src.scaffolder.models import Models, Source
from src.scaffolder.templates import TemplateRenderer
from src.utils import console, ensure_dir


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ApplyStatus(str, Enum):
    """What happened to one target file."""
    REGENERATED = "regenerated"
    CREATED = "created"
    SKIPPED = "skipped"


class ApplyResult(BaseModel):
    """Outcome of applying one source."""

    target: str = Field(..., description="Target path as registered in the model")
    path: Path = Field(..., description="Path actually written (or skipped)")
    status: ApplyStatus
    rights: int = Field(default=0o644)


class GenerationReport(BaseModel):
    """Outcome of applying a whole model."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: str
    results: list[ApplyResult] = Field(default_factory=list)
    errors: list[ScaffoldError] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        """True when every source was applied."""
        return not self.errors

    def count(self, status: ApplyStatus) -> int:
        return sum(1 for result in self.results if result.status is status)


# ---------------------------------------------------------------------------
# Single source
# ---------------------------------------------------------------------------


def apply_source(
    source: Source,
    file: str,
    context: Mapping[str, Any],
    *,
    renderer: TemplateRenderer,
    target_dir: str | Path = ".",
    quiet: bool = False,
) -> ApplyResult:
    """Generate *file* from *source*.

    Args:
        source: The source to apply.
        file: Target path, relative to *target_dir*.
        context: Template variables (see ``YamlData.context``).
        renderer: Renderer holding the template functions.
        target_dir: Directory the target path is relative to.
        quiet: Do not report the outcome on the console.

    Returns:
        The ``ApplyResult``; ``SKIPPED`` when a user-owned file already exists.

    Raises:
        TemplateCompileError: The template body is invalid.
        TemplateRenderError: Rendering failed.
        GenerationIOError: The file could not be written or chmod-ed.
    """
    path = Path(target_dir) / file
    if path.exists() and not source.reset:
        return ApplyResult(target=file, path=path, status=ApplyStatus.SKIPPED, rights=source.rights)

    template = renderer.compile(file, source.template)
    # Rendered before the target is opened: a failing render never truncates it.
    content = renderer.render(template, file, context)

    try:
        ensure_dir(path.parent)
    except OSError as exc:
        raise GenerationIOError(path.parent, "mkdir", f"Unable to create '{path.parent}' tree. {exc}") from exc

    try:
        path.write_bytes(content.encode("utf-8"))
    except OSError as exc:
        raise GenerationIOError(path, "write", f"'{path}' is not writeable. {exc}") from exc

    try:
        path.chmod(source.rights)
    except OSError as exc:
        raise GenerationIOError(path, "chmod", f"Unable to set rights {source.rights:04o}. {exc}") from exc

    if source.reset:
        if not quiet:
            console.print(markup_escape(str(path)), soft_wrap=True)
        return ApplyResult(target=file, path=path, status=ApplyStatus.REGENERATED, rights=source.rights)

    if not quiet:
        console.print(
            f"'{markup_escape(str(path))}' created. "
            "Won't be updated anymore at next generation until file disappear.",
            soft_wrap=True,
        )
    return ApplyResult(target=file, path=path, status=ApplyStatus.CREATED, rights=source.rights)


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


class Generator:
    """Applies registered models to a target directory.

    Given a ``Models`` registry, ``create_model`` renders every source of the
    selected model with a plugin descriptor context.  Each source depends
    only on the prior existence of its own target, so sources are applied
    concurrently on worker threads.
    """

    def __init__(
        self,
        models: Models,
        *,
        target_dir: str | Path = ".",
        max_workers: int = 4,
        renderer: TemplateRenderer | None = None,
        quiet: bool = False,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.models = models
        self.target_dir = Path(target_dir)
        self.max_workers = max_workers
        self.renderer = renderer or TemplateRenderer()
        self.quiet = quiet

    # -- Public API --------------------------------------------------------

    async def create_model(
        self,
        name: str,
        yaml_data: YamlData,
        *,
        fail_fast: bool = True,
    ) -> GenerationReport:
        """Apply every source of the model *name*.

        Args:
            name: Registered model name.
            yaml_data: Descriptor and raw descriptor text.
            fail_fast: Stop at the first failure and raise it once the
                sources already being written have completed.  When
                ``False`` every source is attempted and failures are
                collected in the report.  Files already written are never
                rolled back.

        Returns:
            A ``GenerationReport``; results are sorted by target path.

        Raises:
            UnknownModelError: *name* is not registered.
            ScaffoldError: With ``fail_fast``, the first failure.
        """
        model = self.models.get(name)
        context = yaml_data.context()
        semaphore = asyncio.Semaphore(self.max_workers)
        aborted = False

        async def _apply(file: str, source: Source) -> Optional[ApplyResult]:
            async with semaphore:
                if aborted:
                    return None
                return await asyncio.to_thread(
                    apply_source,
                    source,
                    file,
                    context,
                    renderer=self.renderer,
                    target_dir=self.target_dir,
                    quiet=self.quiet,
                )

        tasks = [asyncio.ensure_future(_apply(file, source)) for file, source in model]
        report = GenerationReport(model=name)

        if fail_fast:
            try:
                results = await asyncio.gather(*tasks)
            except BaseException:
                # Worker threads cannot be interrupted: skip the queued
                # sources and let the running ones finish before raising.
                aborted = True
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            report.results = sorted(results, key=lambda result: result.target)
            return report

        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, ScaffoldError):
                report.errors.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                report.results.append(outcome)
        report.results.sort(key=lambda result: result.target)
        return report

    def generate(self, name: str, yaml_data: YamlData, *, fail_fast: bool = True) -> GenerationReport:
        """Synchronous wrapper around :meth:`create_model`."""
        return asyncio.run(self.create_model(name, yaml_data, fail_fast=fail_fast))
