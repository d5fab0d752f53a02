"""Exception hierarchy for the scaffolding engine.

Every failure the engine can hit is raised as a ``ScaffoldError`` subclass so
that callers (the CLI, or a batch that keeps going) can tell registration,
compile, render, filesystem and lookup failures apart.
"""

from __future__ import annotations

from pathlib import Path


class ScaffoldError(Exception):
    """Base class for every scaffolding failure."""


class DescriptorError(ScaffoldError):
    """Raised when a plugin descriptor cannot be read or validated."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"'{self.path}' is not a valid plugin descriptor. {message}")


class TemplateSourceError(ScaffoldError):
    """Raised at registration time when a template file is missing or unreadable."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"template source '{self.path}': {message}")


class TemplateCompileError(ScaffoldError):
    """Raised when a preprocessed template body has invalid syntax."""

    def __init__(self, target: str, message: str, lineno: int | None = None) -> None:
        self.target = target
        self.lineno = lineno
        where = f" (line {lineno})" if lineno else ""
        super().__init__(f"Template error in '{target}'{where}: {message}")


class TemplateRenderError(ScaffoldError):
    """Raised when a compiled template fails while rendering."""

    def __init__(self, target: str, message: str) -> None:
        self.target = target
        super().__init__(f"Unable to render '{target}': {message}")


class GenerationIOError(ScaffoldError):
    """Raised when a filesystem step (mkdir, write, chmod) fails."""

    def __init__(self, target: str | Path, operation: str, message: str) -> None:
        self.target = Path(target)
        self.operation = operation
        super().__init__(f"{operation} failed for '{self.target}': {message}")


class UnknownModelError(ScaffoldError, KeyError):
    """Raised when generation is requested for a model that was never registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid Model '{name}' to apply.")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])
