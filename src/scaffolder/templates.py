"""Jinja2 rendering for plugin scaffolding.

Provides the closed set of helper functions every template can call, and the
``TemplateRenderer`` that compiles preprocessed template bodies and renders
them against a plugin descriptor.  Helpers are bound both as globals
(``{{ go_vars(yaml.name) }}``) and as filters (``{{ yaml.name|go_vars }}``).

Template bodies use the full Jinja2 syntax: ``{%`` and ``{#`` open tags just
like ``{{``.  Raw text containing them (bash's ``${#arr[@]}``) must emit
them as expressions, e.g. ``${{ '{#' }}arr[@]}``, or compilation fails with
``TemplateCompileError``.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Callable, Mapping

from jinja2 import Environment, StrictUndefined, Template, TemplateError, TemplateSyntaxError

from src.descriptor.models import FlagDescriptor, ObjectDescriptor
from src.errors import TemplateCompileError, TemplateRenderError


# ---------------------------------------------------------------------------
# Template functions
# ---------------------------------------------------------------------------

#: Actions an object supports when its descriptor lists none.
DEFAULT_ACTIONS: tuple[str, ...] = ("add", "change", "remove", "rename", "list")

_WORD_START = re.compile(r"(?<!\w)\w")


def escape(value: str) -> str:
    """Turn multi-line text into the body of one quoted, concatenated literal.

    ``"`` becomes ``\\"`` and each newline closes the literal, adds a ``+``
    and opens a new one on the next line.
    """
    return value.replace('"', '\\"').replace("\n", '\\n" +\n   "')


def go_vars(value: str) -> str:
    """Convert ``my-plugin`` to ``MyPlugin``.

    The first letter of every word is upper-cased (the rest is kept as is)
    and hyphens are dropped.
    """
    titled = _WORD_START.sub(lambda match: match.group(0).upper(), value)
    return titled.replace("-", "")


def go_vars_underscored(value: str) -> str:
    """Convert ``my-plugin`` to ``my_plugin``."""
    return value.replace("-", "_")


def has_prefix(value: str, prefix: str) -> bool:
    return value.startswith(prefix)


def object_has_secure(obj: ObjectDescriptor) -> bool:
    """Return ``True`` if any flag of *obj* is marked secure."""
    return any(flag.secure for flag in obj.flags.values())


def object_tree(obj: ObjectDescriptor) -> dict[str, dict[str, FlagDescriptor]]:
    """Group the flags of *obj* by action.

    A flag without an action restriction belongs to every action; a
    restricted flag only to the actions it lists.  Actions come from the
    object when it declares some, from ``DEFAULT_ACTIONS`` otherwise.
    Actions left without any flag are omitted.

    Returns:
        ``{action: {flag_name: flag}}`` in action order, flags in descriptor
        order.
    """
    actions = obj.actions or DEFAULT_ACTIONS

    tree: dict[str, dict[str, FlagDescriptor]] = {}
    for action in actions:
        bucket = {
            name: flag
            for name, flag in obj.flags.items()
            if not flag.actions or action in flag.actions
        }
        if bucket:
            tree[action] = bucket
    return tree


#: Every helper a template may call.  The set is closed: templates are
#: first-party and rely on exactly these names.
TEMPLATE_FUNCTIONS: Mapping[str, Callable[..., Any]] = MappingProxyType(
    {
        "escape": escape,
        "go_vars": go_vars,
        "go_vars_underscored": go_vars_underscored,
        "has_prefix": has_prefix,
        "object_has_secure": object_has_secure,
        "object_tree": object_tree,
    }
)


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Compiles and renders preprocessed template bodies.

    A single renderer (and its Jinja2 environment) is shared by every source
    of a generation batch; compiled templates do not share state, so
    rendering may happen from several threads.
    """

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.globals.update(TEMPLATE_FUNCTIONS)
        self.env.filters.update(TEMPLATE_FUNCTIONS)

    def compile(self, target: str, body: str) -> Template:
        """Compile *body*, the template of *target*.

        Raises:
            TemplateCompileError: *body* is not valid template syntax.
        """
        try:
            return self.env.from_string(body)
        except TemplateSyntaxError as exc:
            raise TemplateCompileError(target, exc.message or str(exc), exc.lineno) from exc

    def render(self, template: Template, target: str, context: Mapping[str, Any]) -> str:
        """Render a compiled *template* with *context*.

        Raises:
            TemplateRenderError: An undefined variable was used or a helper
                failed.
        """
        try:
            return template.render(**context)
        except TemplateError as exc:
            raise TemplateRenderError(target, exc.message or str(exc)) from exc
        except (AttributeError, TypeError, ValueError) as exc:
            raise TemplateRenderError(target, str(exc)) from exc

    def render_string(self, body: str, context: Mapping[str, Any], target: str = "<string>") -> str:
        """Compile and render *body* in one step."""
        return self.render(self.compile(target, body), target, context)
