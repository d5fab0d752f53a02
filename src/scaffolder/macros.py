"""Template macro preprocessing.

Raw template files are written in the language of the file they produce, so
they stay readable (and, for code, compilable) on their own.  Before Jinja2
sees them, a fixed set of macros is expanded:

* ``__MYPLUGIN__``             -> CamelCase plugin name
* ``__MYPLUGINNAME__``         -> plugin name, verbatim
* ``__MYPLUGIN_UNDERSCORED__`` -> plugin name with ``-`` turned into ``_``
* ``<anything>// __MYPLUGIN: <code>`` -> ``<code>`` (marker comments)
* backslash-newline            -> removed (line continuations)

The module also owns the banners placed on top of generated files.
"""

from __future__ import annotations

import re


# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------

# Applied in order; __MYPLUGIN__ is not a substring of the two others.
PLACEHOLDERS: tuple[tuple[str, str], ...] = (
    ("__MYPLUGIN__", "{{ go_vars(yaml.name) }}"),
    ("__MYPLUGINNAME__", "{{ yaml.name }}"),
    ("__MYPLUGIN_UNDERSCORED__", "{{ go_vars_underscored(yaml.name) }}"),
)

_MARKER_COMMENT = re.compile(r".*// __MYPLUGIN: ?")
_LINE_CONTINUATION = "\\\n"


def preprocess(text: str) -> str:
    """Expand template macros in *text*.

    Placeholders are substituted first, then marker comments are stripped and
    finally line continuations are collapsed.

    Args:
        text: Raw template file content.

    Returns:
        A Jinja2 template body.
    """
    for token, expression in PLACEHOLDERS:
        text = text.replace(token, expression)

    # A callable replacement keeps the empty string literal (no group expansion).
    text = _MARKER_COMMENT.sub(lambda _match: "", text)
    return text.replace(_LINE_CONTINUATION, "")


# ---------------------------------------------------------------------------
# Banners
# ---------------------------------------------------------------------------

GENERATED_PREFIX = "generated-"

GENERATED_BANNER = """\
// This file is autogenerated by "genapp". Do not modify it.
// It has been generated from your '{{ yaml.name }}.yaml' file.
// To update those structure, update the '{{ yaml.name }}.yaml' and run 'genapp generate'
"""

CREATED_BANNER = """\
// This file has been created by "genapp" as initial code. genapp will never update it, EXCEPT if you remove it.

// So, update it for your need.
"""


def comment_banner(banner: str, comment: str) -> str:
    """Rewrite the ``//`` comment markers of *banner* with *comment*."""
    return banner.replace("//", comment)


def add_banner(body: str, comment: str, reset: bool) -> str:
    """Prefix *body* with the banner matching its regeneration policy.

    No banner is added when *comment* is empty (file formats without a
    comment syntax).
    """
    if not comment:
        return body
    if reset:
        return comment_banner(GENERATED_BANNER, comment) + body
    return comment_banner(CREATED_BANNER, comment) + body


def target_name(file: str, comment: str, reset: bool) -> str:
    """Return the path a source is written to.

    Regenerated files that carry a banner get the ``generated-`` prefix.
    """
    if comment and reset:
        return GENERATED_PREFIX + file
    return file
