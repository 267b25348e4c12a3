"""
Plugin discovery — find ``helix-gen-*`` generators a project depends on.

Two steps:
    1. Read the project's dependency manifests (``pyproject.toml``
       dependencies and optional-dependencies, ``requirements*.txt``)
       and keep names carrying the plugin prefix.
    2. For each candidate, read its installed distribution metadata
       for an entry point in the ``helix.plugins`` group. The entry
       point's name is the target; its value is the import path.

Anything missing or malformed is logged and skipped. Discovery never
aborts the scan.
"""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass, field
from importlib import metadata
from pathlib import Path
from typing import Any

from helix.core.errors import PluginLoadError
from helix.plugins.base import PluginEntry

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "helix.plugins"
PLUGIN_PREFIX = "helix-gen-"

_NAME_RE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9_.-]*)")


@dataclass
class DiscoveryReport:
    """What one discovery scan found."""

    project_path: str
    manifests: list[str] = field(default_factory=list)
    candidates: list[str] = field(default_factory=list)
    registered: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_path": self.project_path,
            "manifests": self.manifests,
            "candidates": self.candidates,
            "registered": self.registered,
            "skipped": self.skipped,
        }


def normalize_name(name: str) -> str:
    """PEP 503 normalization: lowercase, runs of ``-_.`` become ``-``."""
    return re.sub(r"[-_.]+", "-", name).lower()


# ── Manifest readers ────────────────────────────────────────────


def _requirement_name(spec: str) -> str | None:
    match = _NAME_RE.match(spec.strip())
    return match.group(1) if match else None


def parse_requirements_txt(path: Path) -> list[str]:
    """Dependency names from a requirements file."""
    names: list[str] = []
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read %s: %s", path, e)
        return names

    for line in lines:
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        name = _requirement_name(line)
        if name:
            names.append(name)
    return names


def parse_pyproject_toml(path: Path) -> list[str]:
    """Dependency names from ``[project]`` dependencies and optional groups."""
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.warning("Cannot parse %s: %s", path, e)
        return []

    project = data.get("project", {})
    specs: list[str] = list(project.get("dependencies", []))
    for group in project.get("optional-dependencies", {}).values():
        specs.extend(group)

    return [n for n in (_requirement_name(s) for s in specs if isinstance(s, str)) if n]


def read_dependency_names(project_path: Path) -> tuple[list[str], list[str]]:
    """All dependency names declared by a project.

    Returns:
        (names in manifest order without duplicates, manifest files read)
    """
    manifests: list[Path] = []
    pyproject = project_path / "pyproject.toml"
    if pyproject.is_file():
        manifests.append(pyproject)
    manifests.extend(sorted(p for p in project_path.glob("requirements*.txt") if p.is_file()))

    seen: set[str] = set()
    names: list[str] = []
    for manifest in manifests:
        parsed = (
            parse_pyproject_toml(manifest)
            if manifest.name == "pyproject.toml"
            else parse_requirements_txt(manifest)
        )
        for name in parsed:
            key = normalize_name(name)
            if key not in seen:
                seen.add(key)
                names.append(name)

    return names, [str(m) for m in manifests]


# ── Distribution metadata ───────────────────────────────────────


def plugin_entry_for(dist_name: str) -> PluginEntry:
    """Build a registry entry from an installed distribution.

    Raises:
        PluginLoadError: Not installed, or no ``helix.plugins`` entry point.
    """
    try:
        dist = metadata.distribution(dist_name)
    except metadata.PackageNotFoundError as e:
        raise PluginLoadError(dist_name, "distribution is not installed") from e

    points = [ep for ep in dist.entry_points if ep.group == ENTRY_POINT_GROUP]
    if not points:
        raise PluginLoadError(dist_name, f"no '{ENTRY_POINT_GROUP}' entry point")
    if len(points) > 1:
        logger.warning(
            "%s declares %d '%s' entry points, using '%s'",
            dist_name,
            len(points),
            ENTRY_POINT_GROUP,
            points[0].name,
        )

    ep = points[0]
    return PluginEntry(
        name=dist_name,
        target=ep.name,
        version=dist.version or "0.0.0",
        module_path=ep.value,
        is_builtin=False,
        description=dist.metadata.get("Summary", "") or "",
    )


def scan(project_path: Path, prefix: str = PLUGIN_PREFIX) -> tuple[list[PluginEntry], DiscoveryReport]:
    """Find plugin entries for every prefixed dependency of a project."""
    project_path = Path(project_path)
    report = DiscoveryReport(project_path=str(project_path))

    if not project_path.is_dir():
        logger.warning("Plugin scan skipped, not a directory: %s", project_path)
        return [], report

    names, manifests = read_dependency_names(project_path)
    report.manifests = manifests
    wanted = normalize_name(prefix)
    report.candidates = [n for n in names if normalize_name(n).startswith(wanted)]

    entries: list[PluginEntry] = []
    for name in report.candidates:
        try:
            entries.append(plugin_entry_for(name))
        except PluginLoadError as e:
            report.skipped[name] = e.reason
            logger.warning("Skipping plugin %s: %s", name, e.reason)

    logger.debug(
        "Plugin scan of %s: %d candidate(s), %d resolvable",
        project_path,
        len(report.candidates),
        len(entries),
    )
    return entries, report
