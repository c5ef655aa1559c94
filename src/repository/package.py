"""Package value types shared by the channel client, repositories and installer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Distribution:
    """Where a package archive lives and how to unpack it."""
    type: str
    url: str


@dataclass
class Package:
    """One version of one package.

    Instances are normally built through ``package_loader.load_package`` which
    validates the raw data; the dataclass itself does no checking.
    """
    name: str
    pretty_name: str
    version: str
    pretty_version: str
    type: str = "library"
    dist: Optional[Distribution] = None
    requires: Dict[str, str] = field(default_factory=dict)
    suggests: Dict[str, str] = field(default_factory=dict)
    license: List[str] = field(default_factory=list)
    description: Optional[str] = None
    autoload: Dict[str, Any] = field(default_factory=dict)
    binaries: List[str] = field(default_factory=list)
    target_dir: Optional[str] = None

    @property
    def unique_name(self) -> str:
        """Repository identity: lower-cased name plus normalized version."""
        return f"{self.name}-{self.version}"

    def __str__(self) -> str:
        return f"{self.pretty_name}-{self.pretty_version}"
