"""State of the node pools managed by nodepoolctl.

The registry is a JSON file mapping pool names to the settings they were
created with, so a later ``delete`` drains the pool with the same selector
and timings.
"""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .config import Config
from .modules.nodepool import ConfigurationError, NodePoolSpec, build_spec, load_spec_file


def registry_path(path: Optional[Union[str, Path]] = None) -> Path:
    return Path(path or Config.REGISTRY_PATH).expanduser()


def load_registry(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    path = registry_path(path)
    if path.exists():
        with open(path, "r") as f:
            return json.load(f)
    return {}


def save_registry(data: Dict[str, Any], path: Optional[Union[str, Path]] = None) -> None:
    path = registry_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def register_pool(name: str, settings: Dict[str, Any], ready: bool,
                  path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Store the settings of a pool, replacing any previous entry."""
    data = load_registry(path)
    entry = {
        "settings": settings,
        "ready": ready,
        "last_updated": datetime.now(timezone.utc).isoformat(),
    }
    data[name] = entry
    save_registry(data, path)
    return entry


def get_pool(name: str, path: Optional[Union[str, Path]] = None) -> Optional[Dict[str, Any]]:
    return load_registry(path).get(name)


def remove_pool(name: str, path: Optional[Union[str, Path]] = None) -> bool:
    """Drop a pool from the registry. Returns False if it was not registered."""
    data = load_registry(path)
    if data.pop(name, None) is None:
        return False
    save_registry(data, path)
    return True


def resolve_spec(name: Optional[str], file: Optional[str] = None, **overrides: Any) -> NodePoolSpec:
    """Build the settings of a pool from explicit overrides over a YAML file,
    or over the registered settings when no file is given.

    Raises:
        ConfigurationError: If no pool name is given or a value is invalid
    """
    explicit = {k: v for k, v in overrides.items() if v is not None}
    if name:
        explicit["node_pool_name"] = name
    if file:
        return load_spec_file(file, **explicit)

    values: Dict[str, Any] = {}
    if name:
        entry = get_pool(name)
        if entry:
            values.update(entry["settings"])
    values.update(explicit)
    if not values.get("node_pool_name"):
        raise ConfigurationError("A node pool name is required (--name or --file)")
    return build_spec(**values)
