"""Path helpers shared by matching, launch resolution and discovery.

Catalog actions store paths with ``{InstallDir}`` style placeholders and
environment variables; shortcuts store plain (often quoted) paths. These
helpers bring both sides to one comparable form.
"""

import ntpath
import os
import re
from typing import Optional

from shortcutsync.shortcuts.app_id import unquote

_PLACEHOLDER_RE = re.compile(r'\{(InstallDir|InstallDirName|Name)\}', re.IGNORECASE)
_WIN_ENV_RE = re.compile(r'%([A-Za-z_][A-Za-z0-9_()]*)%')
_WIN_ABS_RE = re.compile(r'^(?:[A-Za-z]:[\\/]|\\\\)')


def is_windows_absolute(path: str) -> bool:
    return bool(_WIN_ABS_RE.match(path or ""))


def is_absolute(path: str) -> bool:
    return os.path.isabs(path) or is_windows_absolute(path)


def expand_variables(text: Optional[str], install_dir: Optional[str] = None,
                     name: Optional[str] = None) -> str:
    """Replace catalog placeholders and environment variables in text."""
    if not text:
        return ""

    install_dir = unquote(install_dir)

    def replace(match):
        var = match.group(1).lower()
        if var == 'installdir':
            return install_dir
        if var == 'installdirname':
            return os.path.basename(install_dir.rstrip('\\/')) if install_dir else ""
        return name or ""

    text = _PLACEHOLDER_RE.sub(replace, text)
    text = _WIN_ENV_RE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), text)
    return os.path.expandvars(text)


def resolve_path(path: Optional[str], install_dir: Optional[str] = None,
                 name: Optional[str] = None) -> str:
    """Expand, unquote and anchor a relative path at the install dir."""
    expanded = unquote(expand_variables(path, install_dir, name))
    if not expanded:
        return ""
    install_dir = unquote(install_dir)
    if install_dir and not is_absolute(expanded):
        if is_windows_absolute(install_dir):
            return ntpath.join(install_dir, expanded)
        return os.path.join(install_dir, expanded)
    return expanded


def normalize_path(path: Optional[str]) -> str:
    """Unquoted absolute form of a path; falls back to the unquoted text."""
    unquoted = unquote(path)
    if not unquoted:
        return ""
    try:
        if is_windows_absolute(unquoted) and os.sep != '\\':
            return ntpath.normpath(unquoted)
        return os.path.normpath(os.path.abspath(unquoted))
    except (ValueError, OSError):
        return unquoted


def paths_equal(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive comparison of two normalized paths; empty never matches."""
    left, right = normalize_path(a), normalize_path(b)
    if not left or not right:
        return False
    return left.casefold() == right.casefold()
