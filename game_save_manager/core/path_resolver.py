"""Template resolver — expand ``{{p|name}}`` save-path templates into concrete paths.

Resolution never raises for "not found": a falsy :class:`Resolution` means
the template produced nothing on this machine and the caller simply skips it.
"""

from __future__ import annotations

import glob
import os
import re
from dataclasses import dataclass, replace

from loguru import logger

from game_save_manager.core.placeholders import (
    PLACEHOLDER_RE,
    UID,
    UID_TOKEN,
    canonical_name,
)
from game_save_manager.models.resolution import PathType, ResolutionContext, ResolvedPath
from game_save_manager.utils import find_latest_path

REGISTRY_SEP = "\\"

_SEP_RE = re.compile(r"[\\/]+")


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one template; empty ``path`` marks a failure."""

    path: str = ""
    uid: str | None = None

    def __bool__(self) -> bool:
        return bool(self.path)


def normalize_separators(path: str, sep: str) -> str:
    """Collapse runs of ``\\`` and ``/`` into *sep*, keeping a UNC ``\\\\`` prefix."""
    prefix = ""
    if len(path) >= 2 and path[0] in "\\/" and path[1] in "\\/":
        prefix, path = sep * 2, path.lstrip("\\/")
    return prefix + _SEP_RE.sub(lambda _m: sep, path)


def split_segments(path: str, sep: str) -> list[str]:
    return normalize_separators(path, sep).split(sep)


def placeholder_value(name: str, context: ResolutionContext) -> str | None:
    """Expanded value of a placeholder without trailing separators."""
    value = context.value_of(name)
    if not value:
        return None
    return value.rstrip("\\/") or value


def _substitute(template: str, context: ResolutionContext) -> str:
    def replace_token(match: re.Match[str]) -> str:
        name = canonical_name(match.group(0))
        if name == UID:
            return UID_TOKEN
        value = placeholder_value(name, context)
        return match.group(0) if value is None else value

    return PLACEHOLDER_RE.sub(replace_token, template)


def _has_unresolved(path: str) -> bool:
    return any(canonical_name(m) != UID for m in PLACEHOLDER_RE.findall(path))


def _glob(pattern: str) -> list[str]:
    """Filesystem matches for a ``*`` pattern (``[`` is taken literally)."""
    pattern = pattern.replace("[", "[[]")
    if os.sep == "\\":
        pattern = pattern.replace("\\", "/")
    return sorted(glob.glob(pattern))


def extract_uid(base_path: str, matched_path: str, sep: str) -> str | None:
    """
    Recover the uid from a path matched with ``*`` in place of ``{{p|uid}}``.

    Fixed text around the uid in the same segment is dropped:
    ``user_{{p|uid}}`` against ``user_477235894`` gives ``477235894``.
    """
    template_parts = split_segments(base_path, sep)
    matched_parts = split_segments(matched_path, sep)

    for index, part in enumerate(template_parts):
        if UID_TOKEN not in part:
            continue
        if index >= len(matched_parts) or not matched_parts[index]:
            return None
        matched = matched_parts[index]
        prefix, _, suffix = part.partition(UID_TOKEN)
        suffix = suffix.split(UID_TOKEN)[0]
        if prefix and matched.startswith(prefix):
            matched = matched[len(prefix) :]
        if suffix and matched.endswith(suffix) and len(matched) > len(suffix):
            matched = matched[: -len(suffix)]
        return matched
    return None


def _fill_uid(base_path: str, context: ResolutionContext) -> Resolution:
    # Known identities first, in priority order
    for uid in context.user_ids:
        if not uid:
            continue
        candidate = base_path.replace(UID_TOKEN, uid)
        if _glob(candidate):
            return Resolution(candidate, uid)

    wildcard_path = base_path.replace(UID_TOKEN, "*")
    matches = [normalize_separators(m, context.sep) for m in _glob(wildcard_path)]
    if not matches:
        return Resolution()

    latest = find_latest_path(matches)
    uid = extract_uid(base_path, latest, context.sep) if latest else None
    if not uid:
        logger.debug(f"Could not extract uid from {latest} for {base_path}")
        return Resolution()
    logger.debug(f"Discovered uid {uid} for {base_path}")
    return Resolution(base_path.replace(UID_TOKEN, uid), uid)


def resolve_template(template: str, context: ResolutionContext) -> Resolution:
    """
    Expand *template* on this machine.

    Wildcards other than the uid are left in the returned path; use
    :func:`expand_template` to glob them.
    """
    base_path = normalize_separators(_substitute(template, context), context.sep)

    if _has_unresolved(base_path):
        logger.warning(f"Unresolved placeholder found in path: {base_path}")
        return Resolution()

    if UID_TOKEN in base_path:
        return _fill_uid(base_path, context)
    return Resolution(base_path)


def resolve_registry_template(template: str, context: ResolutionContext) -> Resolution:
    """Expand a registry template into ``HIVE\\key`` form."""
    registry_context = replace(context, sep=REGISTRY_SEP)
    base_path = normalize_separators(_substitute(template, registry_context), REGISTRY_SEP)

    if _has_unresolved(base_path):
        logger.warning(f"Unresolved placeholder found in registry path: {base_path}")
        return Resolution()
    if UID_TOKEN in base_path:
        # The registry cannot be searched for unknown uids
        logger.debug(f"Skipping registry template with uid: {template}")
        return Resolution()
    return Resolution(base_path.strip(REGISTRY_SEP))


def parse_registry_path(registry_path: str) -> tuple[str, str]:
    """``HKEY_CURRENT_USER\\Software\\X`` → ``("HKEY_CURRENT_USER", "\\Software\\X")``."""
    parts = registry_path.split(REGISTRY_SEP)
    hive = parts[0].upper()
    return hive, REGISTRY_SEP + REGISTRY_SEP.join(parts[1:])


def _path_type(path: str) -> PathType:
    return PathType.FOLDER if os.path.isdir(path) else PathType.FILE


def expand_template(template: str, context: ResolutionContext) -> list[ResolvedPath]:
    """Resolve *template* and return every existing filesystem entry it names."""
    resolution = resolve_template(template, context)
    if not resolution:
        return []

    if "*" in resolution.path:
        matches = [normalize_separators(m, context.sep) for m in _glob(resolution.path)]
    else:
        matches = [resolution.path]

    return [
        ResolvedPath(
            template=template,
            resolved=match,
            uid=resolution.uid,
            type=_path_type(match),
        )
        for match in matches
        if os.path.exists(match)
    ]
