"""Shared pytest fixtures for the genapp test suite.

Provides reusable fixtures for:
- A sample plugin descriptor (text and parsed context)
- Temporary template trees and output directories
- A clean ``GENAPP_*`` environment
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from src.descriptor.models import YamlData, parse_descriptor
from src.scaffolder.templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clean_genapp_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's GENAPP_* variables out of the tests."""
    for name in (
        "GENAPP_TEMPLATE_PATH",
        "GENAPP_MANIFEST",
        "GENAPP_OUTPUT_DIR",
        "GENAPP_MODEL",
        "GENAPP_MAX_WORKERS",
        "GENAPP_FAIL_FAST",
    ):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

SAMPLE_DESCRIPTOR = textwrap.dedent(
    """\
    ---
    plugin: my-app
    version: 0.1
    description: "Demo plugin."
    runtime:
      docker_image: "my-app"
      service_type: "REST API"
      service:
        parameters: [ "service", "start" ]
    task_flags:
      common:
        flags:
          my-app-debug:
            help: "To activate my-app debug information"
          source-mount:
            help: "Where the source dir is located."
      create:
        help: "Create a my-app instance."
        flags:
          instance-name:
            help: "Name of the instance."
            group: "source"
      maintain:
        help: "Instantiate my-app."
    objects:
      repo:
        help: "A repository."
        identified_by_flag: name
        flags:
          name:
            help: "Repository name."
            required: true
          token:
            help: "Access token."
            secure: true
            only-for-actions: ["add"]
      team:
        default-actions: ["add", "remove"]
        flags:
          members:
            help: "Team members."
            only-for-actions: ["change"]
    """
)


@pytest.fixture
def sample_descriptor_text() -> str:
    """Raw text of a representative plugin descriptor."""
    return SAMPLE_DESCRIPTOR


@pytest.fixture
def yaml_data(sample_descriptor_text: str) -> YamlData:
    """The sample descriptor parsed into a rendering context."""
    return parse_descriptor(sample_descriptor_text)


@pytest.fixture
def descriptor_file(tmp_path: Path, sample_descriptor_text: str) -> Path:
    """The sample descriptor written to ``my-app.yaml``."""
    path = tmp_path / "my-app.yaml"
    path.write_text(sample_descriptor_text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Templates & output
# ---------------------------------------------------------------------------

@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """A template root holding a small ``demo`` model directory."""
    root = tmp_path / "templates"
    demo = root / "demo"
    demo.mkdir(parents=True)
    (demo / "main.py").write_text('NAME = "__MYPLUGINNAME__"\n', encoding="utf-8")
    (demo / "structs.py").write_text("class __MYPLUGIN__:\n    pass\n", encoding="utf-8")
    (demo / "notes.txt").write_text("module __MYPLUGIN_UNDERSCORED__\n", encoding="utf-8")
    return root


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Empty directory files are generated into."""
    out = tmp_path / "out"
    out.mkdir()
    return out
