"""Migration manifest: what was generated, what it needs and where it starts."""
import json
from dataclasses import asdict
from typing import Any, Dict, Iterable
from migrator.generators.types import ProjectManifest

MANIFEST_PATH = "migration-manifest.json"


def build_directory_tree(paths: Iterable[str]) -> Dict[str, Any]:
    """Nest relative paths into dicts; files map to None."""
    tree: Dict[str, Any] = {}
    for path in sorted(paths):
        node = tree
        parts = path.split("/")
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = None
    return tree


def build_manifest(paths: Iterable[str], dependency_list: Dict[str, Dict[str, str]],
                   config_values: Dict[str, Any], entry_points: Dict[str, str]) -> ProjectManifest:
    return ProjectManifest(
        directory_tree=build_directory_tree(list(paths) + [MANIFEST_PATH]),
        dependency_list=dependency_list,
        config_values=config_values,
        entry_points=entry_points,
    )


def render_manifest(manifest: ProjectManifest) -> str:
    return json.dumps(asdict(manifest), indent=2, sort_keys=True) + "\n"
