"""Command line entry point: ``python -m src.cli``.

Sub-commands:

* ``generate`` -- apply a source model for a plugin descriptor
* ``init``     -- create a starter plugin descriptor
* ``models``   -- list the registered models and their files
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from rich.markup import escape as markup_escape

from src.config import GenerateConfig
from src.descriptor.models import descriptor_from_name, load_descriptor
from src.errors import ScaffoldError
from src.scaffolder.generator import ApplyStatus, GenerationReport, Generator
from src.scaffolder.models import DESCRIPTOR_MODEL, Models, register_descriptor_model
from src.utils import (
    console,
    format_duration,
    format_rights,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genapp",
        description="genapp -- generate plugin sources from a plugin descriptor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m src.cli init my-plugin\n"
            "  python -m src.cli generate my-plugin.yaml -o ./my-plugin\n"
            "  python -m src.cli generate my-plugin.yaml --model rest_api --templates ./templates\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Apply a model for a plugin descriptor")
    generate.add_argument("descriptor", help="Path to the plugin descriptor (YAML)")
    generate.add_argument("--model", "-m", default=None, help="Model to apply (default: rest_api)")
    generate.add_argument("--output", "-o", default=None, help="Output directory (default: .)")
    generate.add_argument("--templates", "-t", default=None, help="Template root directory")
    generate.add_argument("--manifest", default=None, help="Models manifest (default: <templates>/models.yaml)")
    generate.add_argument("--workers", "-j", type=int, default=None, help="Sources applied concurrently")
    generate.add_argument(
        "--keep-going",
        action="store_true",
        help="Apply every source even when one fails, then report all failures",
    )

    init = subparsers.add_parser("init", help="Create a starter plugin descriptor")
    init.add_argument("name", help="Plugin name, e.g. my-plugin")
    init.add_argument("--output", "-o", default=".", help="Output directory (default: .)")

    models = subparsers.add_parser("models", help="List registered models")
    models.add_argument("--templates", "-t", default=None, help="Template root directory")
    models.add_argument("--manifest", default=None, help="Models manifest")

    return parser


def _config_from_args(args: argparse.Namespace) -> GenerateConfig:
    config = GenerateConfig.from_env()
    updates: dict[str, object] = {}
    if getattr(args, "templates", None):
        updates["template_path"] = Path(args.templates)
    if getattr(args, "manifest", None):
        updates["manifest"] = Path(args.manifest)
    if getattr(args, "output", None):
        updates["output_dir"] = Path(args.output)
    if getattr(args, "model", None):
        updates["model"] = args.model
    if getattr(args, "workers", None) is not None:
        updates["max_workers"] = args.workers
    if getattr(args, "keep_going", False):
        updates["fail_fast"] = False
    # Re-validate: model_copy(update=...) would skip validation.
    return GenerateConfig.model_validate({**config.model_dump(), **updates})


def _load_models(config: GenerateConfig) -> Models:
    models = Models()
    models.load_manifest(config.manifest_path, config.template_path)
    return models


def _print_report(report: GenerationReport, elapsed: float) -> None:
    print_summary_table(
        {
            "Model": report.model,
            "Regenerated": str(report.count(ApplyStatus.REGENERATED)),
            "Created": str(report.count(ApplyStatus.CREATED)),
            "Preserved": str(report.count(ApplyStatus.SKIPPED)),
            "Failed": str(len(report.errors)),
            "Duration": format_duration(elapsed),
        },
        title="Generation summary",
    )
    for error in report.errors:
        print_error(f"  - {markup_escape(str(error))}")


def _cmd_generate(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    yaml_data = load_descriptor(args.descriptor)
    models = _load_models(config)

    print_header(f"{yaml_data.yaml.name}: {config.model}")
    generator = Generator(models, target_dir=config.output_dir, max_workers=config.max_workers)
    started = time.monotonic()
    report = generator.generate(config.model, yaml_data, fail_fast=config.fail_fast)
    _print_report(report, time.monotonic() - started)

    if not report.success:
        print_error("Generation failed.")
        return 1
    print_success("Generation completed successfully!")
    return 0


def _cmd_init(args: argparse.Namespace) -> int:
    models = Models()
    register_descriptor_model(models, args.name)
    generator = Generator(models, target_dir=args.output)
    report = generator.generate(DESCRIPTOR_MODEL, descriptor_from_name(args.name))
    if report.count(ApplyStatus.SKIPPED):
        print_warning(f"'{args.name}.yaml' already exists, left untouched.")
    return 0


def _cmd_models(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    models = _load_models(config)
    for name in models.names():
        console.print(f"[bold cyan]{name}[/bold cyan]")
        for target, source in models.get(name):
            policy = "regenerated" if source.reset else "created once"
            console.print(f"  {markup_escape(target)}  [dim]{format_rights(source.rights)} {policy}[/dim]")
    return 0


_COMMANDS = {
    "generate": _cmd_generate,
    "init": _cmd_init,
    "models": _cmd_models,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return _COMMANDS[args.command](args)
    except ScaffoldError as exc:
        print_error(f"Error: {markup_escape(str(exc))}")
        return 1
    except ValueError as exc:
        # Invalid option values (pydantic.ValidationError is a ValueError).
        print_error(f"Error: {markup_escape(str(exc))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
