"""Build validated ``Package`` objects from raw package data.

Raw data uses the keys of a package manifest entry: ``name``, ``version``,
``type``, ``dist``, ``require``, ``suggest``, ``license``, ``description``,
``autoload``, ``bin`` and ``target-dir``.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Tuple

from constants import Constants
from errors import PackageValidationError
from repository.package import Distribution, Package

PACKAGE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][\w.-]*(?:/[A-Za-z0-9][\w.-]*)+$")
LINK_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][\w.-]*(?:/[A-Za-z0-9][\w.-]*)*$")

_MODIFIERS = {
    "stable": "stable",
    "rc": "RC",
    "beta": "beta",
    "b": "beta",
    "alpha": "alpha",
    "a": "alpha",
    "patch": "patch",
    "pl": "patch",
    "p": "patch",
}
_VERSION_PATTERN = re.compile(
    r"^v?(\d{1,5})(\.\d+)?(\.\d+)?(\.\d+)?"
    r"(?:[._-]?(stable|beta|b|rc|alpha|a|patch|pl|p)((?:[.-]?\d+)*))?"
    r"([.-]?dev)?$",
    re.IGNORECASE,
)
_CONSTRAINT_PATTERN = re.compile(r"^(?:>=|<=|>|<|!=|==|=|~|\^)?\s*v?\d[\w.+-]*$")


def normalize_version(version: str) -> str:
    """Normalize a published version to a four-part comparable string.

    ``1.2`` becomes ``1.2.0.0``, ``1.0.0RC1`` becomes ``1.0.0.0-RC1`` and
    ``dev-master`` is kept as is.

    Raises:
        PackageValidationError: the version cannot be parsed.
    """
    version = (version or "").strip()
    if not version:
        raise PackageValidationError("Version is empty")
    if version.lower().startswith("dev-"):
        return "dev-" + version[4:]

    match = _VERSION_PATTERN.match(version)
    if not match:
        raise PackageValidationError(f"Invalid version string '{version}'")

    parts = [match.group(1)]
    for group in match.groups()[1:4]:
        parts.append(group[1:] if group else "0")
    normalized = ".".join(str(int(part)) for part in parts)

    modifier = match.group(5)
    if modifier:
        label = _MODIFIERS[modifier.lower()]
        if label != "stable":
            number = re.sub(r"^[.-]", "", match.group(6) or "")
            normalized += f"-{label}{number}"
    if match.group(7):
        normalized += "-dev"
    return normalized


def _validate_constraint(name: str, constraint: Any) -> str:
    if not isinstance(constraint, str) or not constraint.strip():
        raise PackageValidationError(f"Constraint for '{name}' must be a non-empty string")
    constraint = constraint.strip()
    if constraint == "*":
        return constraint
    for part in constraint.split(","):
        part = part.strip()
        if part != "*" and not _CONSTRAINT_PATTERN.match(part):
            raise PackageValidationError(f"Invalid constraint '{constraint}' for '{name}'")
    return constraint


def _load_links(data: Mapping[str, Any], key: str, validate: bool) -> Dict[str, str]:
    raw = data.get(key) or {}
    if not isinstance(raw, Mapping):
        raise PackageValidationError(f"'{key}' must be a mapping")
    links: Dict[str, str] = {}
    for target, constraint in raw.items():
        if not isinstance(target, str) or not LINK_NAME_PATTERN.match(target):
            raise PackageValidationError(f"Invalid link target '{target}' in '{key}'")
        if validate:
            links[target] = _validate_constraint(target, constraint)
        else:
            links[target] = str(constraint)
    return links


def _load_string_list(data: Mapping[str, Any], key: str) -> List[str]:
    raw = data.get(key)
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return list(raw)
    raise PackageValidationError(f"'{key}' must be a string or a list of strings")


def load_package(data: Mapping[str, Any]) -> Package:
    """Validate ``data`` and build a ``Package``.

    Raises:
        PackageValidationError: any field is missing or malformed.
    """
    if not isinstance(data, Mapping):
        raise PackageValidationError("Package data must be a mapping")

    name = data.get("name")
    if not isinstance(name, str) or not PACKAGE_NAME_PATTERN.match(name):
        raise PackageValidationError(f"Invalid package name '{name}'")

    pretty_version = data.get("version")
    if not isinstance(pretty_version, str):
        raise PackageValidationError(f"Package {name} has no version")
    version = normalize_version(pretty_version)

    package_type = data.get("type") or Constants.DEFAULT_PACKAGE_TYPE
    if not isinstance(package_type, str):
        raise PackageValidationError(f"Package {name} has an invalid type")

    dist = None
    raw_dist = data.get("dist")
    if raw_dist is not None:
        if not isinstance(raw_dist, Mapping) or not raw_dist.get("type") or not raw_dist.get("url"):
            raise PackageValidationError(f"Package {name} has an invalid dist, type and url are required")
        dist = Distribution(type=str(raw_dist["type"]), url=str(raw_dist["url"]))

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        raise PackageValidationError(f"Package {name} has an invalid description")

    autoload = data.get("autoload") or {}
    if not isinstance(autoload, Mapping):
        raise PackageValidationError(f"Package {name} has an invalid autoload section")

    target_dir = data.get("target-dir")
    if target_dir is not None:
        if not isinstance(target_dir, str):
            raise PackageValidationError(f"Package {name} has an invalid target-dir")
        target_dir = target_dir.strip("/") or None

    return Package(
        name=name.lower(),
        pretty_name=name,
        version=version,
        pretty_version=pretty_version,
        type=package_type,
        dist=dist,
        requires=_load_links(data, "require", validate=True),
        suggests=_load_links(data, "suggest", validate=False),
        license=_load_string_list(data, "license"),
        description=description,
        autoload=dict(autoload),
        binaries=_load_string_list(data, "bin"),
        target_dir=target_dir,
    )


def dump_package(package: Package) -> Dict[str, Any]:
    """Inverse of ``load_package``: raw data for JSON output and persistence."""
    data: Dict[str, Any] = {
        "name": package.pretty_name,
        "version": package.pretty_version,
        "version_normalized": package.version,
        "type": package.type,
    }
    if package.dist:
        data["dist"] = {"type": package.dist.type, "url": package.dist.url}
    if package.requires:
        data["require"] = dict(package.requires)
    if package.suggests:
        data["suggest"] = dict(package.suggests)
    if package.license:
        data["license"] = list(package.license)
    if package.description:
        data["description"] = package.description
    if package.autoload:
        data["autoload"] = dict(package.autoload)
    if package.binaries:
        data["bin"] = list(package.binaries)
    if package.target_dir:
        data["target-dir"] = package.target_dir
    return data


_STABILITY_RANK = {"dev": 0, "alpha": 1, "beta": 2, "RC": 3, "patch": 5}
_SUFFIX_PATTERN = re.compile(r"^(alpha|beta|RC|patch|dev)(\d*)")


def version_sort_key(version: str) -> Tuple[Tuple[int, ...], int, int]:
    """Sort key for normalized versions; ``dev-`` branches sort first."""
    if version.startswith("dev-"):
        return ((-1,), 0, 0)
    base, _, suffix = version.partition("-")
    numbers = tuple(int(part) for part in base.split(".") if part.isdigit())
    match = _SUFFIX_PATTERN.match(suffix)
    if not match:
        return (numbers, 4, 0)
    return (numbers, _STABILITY_RANK[match.group(1)], int(match.group(2) or 0))
