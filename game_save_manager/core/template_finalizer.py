"""Template finalizer — turn a resolved path back into a storable template.

The stored template keeps its placeholders so it can be re-resolved on
another machine, while wildcard segments and the discovered uid are baked in:
a restore must land on exactly the location that was backed up.
"""

from __future__ import annotations

import re

from game_save_manager.core.path_resolver import placeholder_value, split_segments
from game_save_manager.core.placeholders import PLACEHOLDER_RE, UID, canonical_name, token
from game_save_manager.models.resolution import ResolutionContext

_MARKER = "\x00"
_MARKER_RE = re.compile(r"\x00(\d+)\x00")


def _protect_placeholders(template: str) -> tuple[str, list[str]]:
    """Swap tokens for separator-free markers so names like ``userprofile/documents`` survive splitting."""
    names: list[str] = []

    def protect(match: re.Match[str]) -> str:
        names.append(canonical_name(match.group(0)))
        return f"{_MARKER}{len(names) - 1}{_MARKER}"

    return PLACEHOLDER_RE.sub(protect, template), names


def finalize_template(
    template: str,
    resolved: str,
    uid: str | None,
    context: ResolutionContext,
) -> str:
    """
    Reduce *resolved* (one expansion of *template*) to a portable template.

    ``context.game_install_path`` must be the install path the template was
    resolved with. Segments are walked in lockstep: a placeholder advances
    the resolved cursor by as many segments as its value spans.
    """
    sep = context.sep
    protected, names = _protect_placeholders(template)
    template_parts = split_segments(protected, sep)
    resolved_parts = split_segments(resolved, sep)

    result: list[str] = []
    cursor = 0

    for part in template_parts:
        if _MARKER_RE.search(part):

            def emit(match: re.Match[str]) -> str:
                name = names[int(match.group(1))]
                if name == UID and uid:
                    return uid
                return token(name)

            def expand(match: re.Match[str]) -> str:
                name = names[int(match.group(1))]
                if name == UID:
                    return uid or "_"
                # Unknown values count as a single segment
                return placeholder_value(name, context) or "_"

            result.append(_MARKER_RE.sub(emit, part))
            cursor += len(split_segments(_MARKER_RE.sub(expand, part), sep))

        elif "*" in part:
            result.append(resolved_parts[cursor] if cursor < len(resolved_parts) else part)
            cursor += 1

        else:
            result.append(part)
            cursor += 1

    return sep.join(result)
