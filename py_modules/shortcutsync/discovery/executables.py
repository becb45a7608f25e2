"""
Executable discovery for catalog games that have an install directory but no
file action.

Order of preference:
1. GOG ``goggame-*.info`` manifest (primary play task)
2. Shallow scan for executables, minus installers, redistributables and
   crash handlers
3. A single remaining candidate wins outright
4. Otherwise candidates are scored against the display name and only a clear
   winner is returned
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

EXECUTABLE_EXTENSIONS = ('.exe',)
DEFAULT_MAX_DEPTH = 2

EXCLUDED_DIRS = {
    'redist', '_redist', 'redistributables', 'redistributable', '_commonredist',
    'commonredist', 'directx', 'dotnet', 'vcredist', 'support', 'installer',
    'installers', '__installer', 'prereq', 'prerequisites',
}

EXCLUDED_PREFIXES = (
    'unins', 'uninstall', 'setup', 'install', 'updater', 'update', 'patcher',
    'crash', 'unitycrashhandler', 'crashreport', 'vc_redist', 'vcredist',
    'dxsetup', 'dxwebsetup', 'dotnet', 'physx', 'ue4prereq', 'ueprereq',
    'easyanticheat', 'battleye', 'cleanup', 'notification_helper',
)

# Trailing build/arch markers dropped before comparing with the game name
_NAME_SUFFIXES = ('shipping', 'win64', 'win32', 'x64', 'x86', 'dx11', 'dx12', 'vulkan', '64', '32')
_NON_ALNUM_RE = re.compile(r'[^0-9a-z]+')

SCORE_EXACT_NAME = 100
SCORE_PARTIAL_NAME = 50
SCORE_IN_ROOT = 30
SCORE_SIZE_STEP = 10
SIZE_LARGE = 10 * 1024 * 1024
SIZE_HUGE = 50 * 1024 * 1024
MIN_SCORE = 50
MIN_LEAD = 20


@dataclass
class DiscoveryResult:
    """Outcome of a discovery run; ``path`` is set only for a confident pick."""
    outcome: str  # manifest, single, scored, ambiguous, not_found, no_install_dir
    path: Optional[str] = None
    candidates: List[str] = field(default_factory=list)


def normalize_name(text: str) -> str:
    """Lowercase alphanumerics of a name, without build/arch suffixes."""
    name = _NON_ALNUM_RE.sub('', (text or '').lower())
    stripped = True
    while stripped:
        stripped = False
        for suffix in _NAME_SUFFIXES:
            if name.endswith(suffix) and len(name) > len(suffix):
                name = name[:-len(suffix)]
                stripped = True
    return name


def find_gog_manifest_exe(install_dir: str) -> Optional[str]:
    """Primary play task from a goggame-*.info manifest, if its file exists."""
    search_dirs = [install_dir]
    game_subdir = os.path.join(install_dir, 'game')
    if os.path.isdir(game_subdir):
        search_dirs.append(game_subdir)

    for directory in search_dirs:
        try:
            entries = sorted(os.listdir(directory))
        except OSError:
            continue
        for item in entries:
            if not (item.startswith('goggame-') and item.endswith('.info')):
                continue
            info_file = os.path.join(directory, item)
            try:
                with open(info_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"[Discovery] Error reading manifest {info_file}: {e}")
                continue

            tasks = [t for t in data.get('playTasks', []) if isinstance(t, dict) and t.get('path')]
            if not tasks:
                continue
            primary = next((t for t in tasks if t.get('isPrimary')), tasks[0])
            rel_path = primary['path'].replace('\\', os.sep)
            full_path = os.path.normpath(os.path.join(directory, rel_path))
            if os.path.isfile(full_path):
                logger.info(f"[Discovery] Found exe via GOG manifest: {full_path}")
                return full_path
            logger.debug(f"[Discovery] Manifest exe missing on disk: {full_path}")
    return None


def scan_for_executables(install_dir: str, max_depth: int = DEFAULT_MAX_DEPTH) -> List[str]:
    """Executables under install_dir, at most max_depth directories deep."""
    results: List[str] = []
    root_depth = install_dir.rstrip(os.sep).count(os.sep)

    for dirpath, dirnames, filenames in os.walk(install_dir):
        depth = dirpath.rstrip(os.sep).count(os.sep) - root_depth
        if depth >= max_depth:
            dirnames[:] = []
        else:
            dirnames[:] = sorted(d for d in dirnames if d.lower() not in EXCLUDED_DIRS)

        for filename in sorted(filenames):
            lower = filename.lower()
            if not lower.endswith(EXECUTABLE_EXTENSIONS):
                continue
            if lower.startswith(EXCLUDED_PREFIXES):
                continue
            results.append(os.path.join(dirpath, filename))
    return results


def score_executable(path: str, display_name: str, install_dir: str) -> int:
    score = 0
    exe_name = normalize_name(os.path.splitext(os.path.basename(path))[0])
    game_name = normalize_name(display_name)
    if exe_name and game_name:
        if exe_name == game_name:
            score += SCORE_EXACT_NAME
        elif exe_name in game_name or game_name in exe_name:
            score += SCORE_PARTIAL_NAME

    if os.path.normcase(os.path.dirname(os.path.abspath(path))) == \
            os.path.normcase(os.path.abspath(install_dir)):
        score += SCORE_IN_ROOT

    try:
        size = os.path.getsize(path)
    except OSError:
        size = 0
    if size > SIZE_LARGE:
        score += SCORE_SIZE_STEP
    if size > SIZE_HUGE:
        score += SCORE_SIZE_STEP
    return score


def select_best_executable(candidates: List[str], display_name: str,
                           install_dir: str) -> Optional[str]:
    """Highest scoring candidate, or None unless it clearly beats the rest."""
    if not candidates:
        return None
    scored: List[Tuple[int, str]] = sorted(
        ((score_executable(c, display_name, install_dir), c) for c in candidates),
        key=lambda item: item[0],
        reverse=True,
    )
    best_score, best = scored[0]
    runner_up = scored[1][0] if len(scored) > 1 else 0
    logger.debug(f"[Discovery] Scores for '{display_name}': {scored}")
    if best_score >= MIN_SCORE and best_score - runner_up > MIN_LEAD:
        return best
    return None


def discover_candidates(install_dir: Optional[str], display_name: str,
                        max_depth: int = DEFAULT_MAX_DEPTH) -> DiscoveryResult:
    if not install_dir or not os.path.isdir(install_dir):
        return DiscoveryResult('no_install_dir')

    manifest_exe = find_gog_manifest_exe(install_dir)
    if manifest_exe:
        return DiscoveryResult('manifest', manifest_exe, [manifest_exe])

    candidates = scan_for_executables(install_dir, max_depth)
    if not candidates:
        logger.info(f"[Discovery] No executables found for '{display_name}' in {install_dir}")
        return DiscoveryResult('not_found')
    if len(candidates) == 1:
        return DiscoveryResult('single', candidates[0], candidates)

    best = select_best_executable(candidates, display_name, install_dir)
    if best:
        logger.info(f"[Discovery] Selected {best} for '{display_name}'")
        return DiscoveryResult('scored', best, candidates)

    logger.info(f"[Discovery] {len(candidates)} candidates for '{display_name}', none clearly best")
    return DiscoveryResult('ambiguous', None, candidates)


def discover(install_dir: Optional[str], display_name: str) -> Optional[str]:
    """Best executable for a game, or None when absent or ambiguous."""
    return discover_candidates(install_dir, display_name).path
