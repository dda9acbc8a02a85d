"""Windows registry access — key existence checks and ``reg.exe`` export/import."""

from __future__ import annotations

import platform
import subprocess
from pathlib import Path

from loguru import logger

from game_save_manager.core.path_resolver import parse_registry_path

REG_FILE_NAME = "registry_backup.reg"

_HIVE_NAMES = ("HKEY_CURRENT_USER", "HKEY_LOCAL_MACHINE", "HKEY_CLASSES_ROOT")


class RegistryError(Exception):
    """The registry tool could not be run or reported a failure."""


def is_supported_hive(hive: str) -> bool:
    return hive in _HIVE_NAMES


def key_exists(registry_path: str) -> bool:
    """Whether ``HIVE\\key`` exists. Always ``False`` off Windows."""
    hive, key = parse_registry_path(registry_path)
    if not is_supported_hive(hive):
        logger.warning(f"Invalid registry hive: {hive}")
        return False
    if platform.system() != "Windows":
        return False

    import winreg

    root = getattr(winreg, hive)
    try:
        with winreg.OpenKey(root, key.lstrip("\\")):
            return True
    except FileNotFoundError:
        return False
    except OSError as e:
        raise RegistryError(f"Registry existence check failed for {registry_path}: {e}") from e


def _run(args: list[str]) -> None:
    try:
        subprocess.run(args, check=True, capture_output=True, text=True)  # noqa: S603
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or e.stdout or "").strip()
        raise RegistryError(f"{' '.join(args[:2])} failed: {detail or e.returncode}") from e
    except OSError as e:
        raise RegistryError(f"Cannot run {args[0]}: {e}") from e


def export_key(registry_path: str, destination: Path) -> None:
    """Export a key (and subkeys) to a ``.reg`` file."""
    logger.debug(f"Exporting registry key {registry_path} → {destination}")
    _run(["reg", "export", registry_path, str(destination), "/y"])


def import_key(reg_file: Path) -> None:
    """Import a ``.reg`` file produced by :func:`export_key`."""
    logger.debug(f"Importing registry file {reg_file}")
    _run(["reg", "import", str(reg_file)])
