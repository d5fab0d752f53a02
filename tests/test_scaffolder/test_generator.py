"""Tests for the generation driver.

Covers:
- Create-once files are preserved, reset files are always regenerated
- Permission bits, parent directory creation
- Compile, render and filesystem failures
- Batch application: unknown model, fail-fast and keep-going modes
- Console reporting
"""

from __future__ import annotations

import stat
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from src.errors import (
    GenerationIOError,
    TemplateCompileError,
    TemplateRenderError,
    UnknownModelError,
)
from src.scaffolder.generator import ApplyResult, ApplyStatus, GenerationReport, Generator, apply_source
from src.scaffolder.models import Models, Source


pytestmark = pytest.mark.unit


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def _source(template: str, *, reset: bool, rights: int = 0o644) -> Source:
    return Source(reset=reset, template=template, rights=rights)


# ---------------------------------------------------------------------------
# apply_source
# ---------------------------------------------------------------------------


class TestApplySource:
    def test_creates_missing_file(self, renderer, yaml_data, output_dir):
        result = apply_source(
            _source("name={{ yaml.name }}\n", reset=False, rights=0o640),
            "app.txt",
            yaml_data.context(),
            renderer=renderer,
            target_dir=output_dir,
            quiet=True,
        )

        target = output_dir / "app.txt"
        assert result.status is ApplyStatus.CREATED
        assert result.path == target
        assert target.read_text(encoding="utf-8") == "name=my-app\n"
        assert _mode(target) == 0o640

    def test_existing_create_once_file_is_untouched(self, renderer, yaml_data, output_dir):
        target = output_dir / "app.txt"
        target.write_text("user edits\n", encoding="utf-8")
        target.chmod(0o600)

        result = apply_source(
            _source("name={{ yaml.name }}\n", reset=False, rights=0o755),
            "app.txt",
            yaml_data.context(),
            renderer=renderer,
            target_dir=output_dir,
            quiet=True,
        )

        assert result.status is ApplyStatus.SKIPPED
        assert target.read_text(encoding="utf-8") == "user edits\n"
        assert _mode(target) == 0o600

    def test_skip_happens_before_compiling(self, renderer, yaml_data, output_dir):
        (output_dir / "app.txt").write_text("kept", encoding="utf-8")
        result = apply_source(
            _source("{% if %}", reset=False),
            "app.txt",
            yaml_data.context(),
            renderer=renderer,
            target_dir=output_dir,
            quiet=True,
        )
        assert result.status is ApplyStatus.SKIPPED

    def test_reset_file_is_always_overwritten(self, renderer, yaml_data, output_dir):
        target = output_dir / "generated-app.txt"
        target.write_text("stale content that is longer than the new one\n", encoding="utf-8")
        target.chmod(0o600)

        for _ in range(2):
            result = apply_source(
                _source("{{ yaml.name }}\n", reset=True, rights=0o644),
                "generated-app.txt",
                yaml_data.context(),
                renderer=renderer,
                target_dir=output_dir,
                quiet=True,
            )
            assert result.status is ApplyStatus.REGENERATED
            assert target.read_text(encoding="utf-8") == "my-app\n"
            assert _mode(target) == 0o644

    def test_parent_directories_created(self, renderer, yaml_data, output_dir):
        apply_source(
            _source("x", reset=True),
            "a/b/c.txt",
            yaml_data.context(),
            renderer=renderer,
            target_dir=output_dir,
            quiet=True,
        )
        assert (output_dir / "a" / "b" / "c.txt").read_text(encoding="utf-8") == "x"

    def test_compile_error(self, renderer, yaml_data, output_dir):
        with pytest.raises(TemplateCompileError):
            apply_source(
                _source("{% for %}", reset=True),
                "bad.txt",
                yaml_data.context(),
                renderer=renderer,
                target_dir=output_dir,
                quiet=True,
            )
        assert not (output_dir / "bad.txt").exists()

    def test_render_error_leaves_existing_file(self, renderer, yaml_data, output_dir):
        target = output_dir / "gen.txt"
        target.write_text("previous\n", encoding="utf-8")

        with pytest.raises(TemplateRenderError):
            apply_source(
                _source("{{ yaml.unknown_field }}", reset=True),
                "gen.txt",
                yaml_data.context(),
                renderer=renderer,
                target_dir=output_dir,
                quiet=True,
            )
        assert target.read_text(encoding="utf-8") == "previous\n"

    def test_mkdir_failure(self, renderer, yaml_data, output_dir):
        (output_dir / "blocker").write_text("a file, not a directory", encoding="utf-8")

        with pytest.raises(GenerationIOError) as excinfo:
            apply_source(
                _source("x", reset=True),
                "blocker/inner.txt",
                yaml_data.context(),
                renderer=renderer,
                target_dir=output_dir,
                quiet=True,
            )
        assert excinfo.value.operation == "mkdir"

    def test_write_failure(self, renderer, yaml_data, output_dir):
        (output_dir / "taken").mkdir()

        with pytest.raises(GenerationIOError) as excinfo:
            apply_source(
                _source("x", reset=True),
                "taken",
                yaml_data.context(),
                renderer=renderer,
                target_dir=output_dir,
                quiet=True,
            )
        assert excinfo.value.operation == "write"
        assert excinfo.value.target == output_dir / "taken"

    def test_chmod_failure(self, renderer, yaml_data, output_dir):
        with patch.object(Path, "chmod", side_effect=PermissionError("denied")):
            with pytest.raises(GenerationIOError) as excinfo:
                apply_source(
                    _source("x", reset=True),
                    "file.txt",
                    yaml_data.context(),
                    renderer=renderer,
                    target_dir=output_dir,
                    quiet=True,
                )
        assert excinfo.value.operation == "chmod"

    def test_reports_regenerated_path(self, renderer, yaml_data, output_dir, capsys):
        apply_source(
            _source("x", reset=True),
            "generated-x.txt",
            yaml_data.context(),
            renderer=renderer,
            target_dir=output_dir,
        )
        out = capsys.readouterr().out
        assert "generated-x.txt" in out
        assert "created" not in out

    def test_reports_created_once(self, renderer, yaml_data, output_dir, capsys):
        apply_source(
            _source("x", reset=False),
            "main.txt",
            yaml_data.context(),
            renderer=renderer,
            target_dir=output_dir,
        )
        out = " ".join(capsys.readouterr().out.split())
        assert "main.txt' created." in out
        assert "Won't be updated anymore" in out

    def test_quiet(self, renderer, yaml_data, output_dir, capsys):
        apply_source(
            _source("x", reset=False),
            "main.txt",
            yaml_data.context(),
            renderer=renderer,
            target_dir=output_dir,
            quiet=True,
        )
        assert capsys.readouterr().out == ""


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


@pytest.fixture
def demo_models(template_root: Path) -> Models:
    models = Models()
    (
        models.create("demo", template_root)
        .source("main.py", 0o644, "#", "main.py", False)
        .source("structs.py", 0o644, "#", "structs.py", True)
        .source("docs/notes.txt", 0o600, "", "notes.txt", False)
    )
    return models


class TestGenerator:
    def test_max_workers_validated(self, demo_models):
        with pytest.raises(ValueError):
            Generator(demo_models, max_workers=0)

    async def test_applies_every_source(self, demo_models, yaml_data, output_dir):
        generator = Generator(demo_models, target_dir=output_dir, quiet=True)
        report = await generator.create_model("demo", yaml_data)

        assert isinstance(report, GenerationReport)
        assert report.success
        assert [result.target for result in report.results] == [
            "docs/notes.txt",
            "generated-structs.py",
            "main.py",
        ]
        assert report.count(ApplyStatus.CREATED) == 2
        assert report.count(ApplyStatus.REGENERATED) == 1

        assert (output_dir / "generated-structs.py").read_text(encoding="utf-8").endswith(
            "class MyApp:\n    pass\n"
        )
        assert (output_dir / "main.py").read_text(encoding="utf-8").endswith('NAME = "my-app"\n')
        assert (output_dir / "docs" / "notes.txt").read_text(encoding="utf-8") == "module my_app\n"
        assert _mode(output_dir / "docs" / "notes.txt") == 0o600

    async def test_second_run_preserves_user_files(self, demo_models, yaml_data, output_dir):
        generator = Generator(demo_models, target_dir=output_dir, quiet=True)
        await generator.create_model("demo", yaml_data)

        (output_dir / "main.py").write_text("# mine\n", encoding="utf-8")
        (output_dir / "generated-structs.py").write_text("# clobbered\n", encoding="utf-8")

        report = await generator.create_model("demo", yaml_data)

        assert (output_dir / "main.py").read_text(encoding="utf-8") == "# mine\n"
        assert "class MyApp:" in (output_dir / "generated-structs.py").read_text(encoding="utf-8")
        assert report.count(ApplyStatus.SKIPPED) == 2
        assert report.count(ApplyStatus.REGENERATED) == 1

    async def test_sources_are_independent(self, demo_models, yaml_data, output_dir):
        (output_dir / "main.py").write_text("# mine\n", encoding="utf-8")
        generator = Generator(demo_models, target_dir=output_dir, quiet=True)

        report = await generator.create_model("demo", yaml_data)

        statuses = {result.target: result.status for result in report.results}
        assert statuses["main.py"] is ApplyStatus.SKIPPED
        assert statuses["docs/notes.txt"] is ApplyStatus.CREATED

    async def test_unknown_model(self, demo_models, yaml_data, output_dir):
        generator = Generator(demo_models, target_dir=output_dir, quiet=True)
        with pytest.raises(UnknownModelError):
            await generator.create_model("missing", yaml_data)
        assert list(output_dir.iterdir()) == []

    async def test_fail_fast(self, template_root, yaml_data, output_dir):
        (template_root / "demo" / "broken.txt").write_text("{% if %}", encoding="utf-8")
        models = Models()
        models.create("demo", template_root).source("broken.txt", 0o644, "", "broken.txt", True)

        generator = Generator(models, target_dir=output_dir, quiet=True)
        with pytest.raises(TemplateCompileError):
            await generator.create_model("demo", yaml_data)

    async def test_keep_going_collects_errors(self, template_root, yaml_data, output_dir):
        (template_root / "demo" / "broken.txt").write_text("{% if %}", encoding="utf-8")
        models = Models()
        (
            models.create("demo", template_root)
            .source("broken.txt", 0o644, "", "broken.txt", True)
            .source("main.py", 0o644, "#", "main.py", False)
        )

        generator = Generator(models, target_dir=output_dir, max_workers=1, quiet=True)
        report = await generator.create_model("demo", yaml_data, fail_fast=False)

        assert not report.success
        assert len(report.errors) == 1
        assert isinstance(report.errors[0], TemplateCompileError)
        assert [result.target for result in report.results] == ["main.py"]
        assert (output_dir / "main.py").exists()

    def test_generate_sync(self, demo_models, yaml_data, output_dir):
        report = Generator(demo_models, target_dir=output_dir, quiet=True).generate("demo", yaml_data)
        assert report.success
        assert len(report.results) == 3

    async def test_empty_model(self, template_root, yaml_data, output_dir):
        models = Models()
        models.create("empty", template_root)
        report = await Generator(models, target_dir=output_dir, quiet=True).create_model("empty", yaml_data)
        assert report.results == []
        assert report.success

    async def test_fail_fast_waits_for_running_sources(self, demo_models, yaml_data, output_dir):
        finished: list[str] = []

        def _slow_or_broken(source, file, context, **kwargs):
            if file == "main.py":
                raise TemplateCompileError(file, "unexpected end of template")
            time.sleep(0.2)
            finished.append(file)
            return ApplyResult(target=file, path=output_dir / file, status=ApplyStatus.CREATED)

        generator = Generator(demo_models, target_dir=output_dir, max_workers=3, quiet=True)
        with patch("src.scaffolder.generator.apply_source", side_effect=_slow_or_broken):
            with pytest.raises(TemplateCompileError):
                await generator.create_model("demo", yaml_data)

        assert sorted(finished) == ["docs/notes.txt", "generated-structs.py"]
