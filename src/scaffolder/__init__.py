"""genapp scaffolder -- generates plugin sources from template models.

A ``Models`` registry maps model names to sets of ``Source`` entries, each
one a preprocessed template for one target file.  The ``Generator`` applies
a model for a plugin descriptor: machine-owned files are regenerated on
every run, user-owned ones are created once and never touched again.

Quick usage::

    from src.descriptor import load_descriptor
    from src.scaffolder import Generator, builtin_models

    models = builtin_models()
    generator = Generator(models, target_dir="my-plugin")
    report = generator.generate("rest_api", load_descriptor("my-plugin.yaml"))
"""

from src.scaffolder.generator import (
    ApplyResult,
    ApplyStatus,
    GenerationReport,
    Generator,
    apply_source,
)
from src.scaffolder.macros import add_banner, preprocess
from src.scaffolder.models import (
    DEFAULT_TEMPLATE_DIR,
    Model,
    Models,
    Source,
    builtin_models,
    register_descriptor_model,
)
from src.scaffolder.templates import TEMPLATE_FUNCTIONS, TemplateRenderer

__all__ = [
    "ApplyResult",
    "ApplyStatus",
    "DEFAULT_TEMPLATE_DIR",
    "GenerationReport",
    "Generator",
    "Model",
    "Models",
    "Source",
    "TEMPLATE_FUNCTIONS",
    "TemplateRenderer",
    "add_banner",
    "apply_source",
    "builtin_models",
    "preprocess",
    "register_descriptor_model",
]
