"""Build and version information."""

from __future__ import annotations

import dataclasses
import json
import os
import platform
import tomllib
from dataclasses import dataclass


@dataclass(frozen=True)
class Version:
    """Version details reported by the tools."""

    package: str
    version: str
    proto: str
    solana: str
    git: str
    rustc: str
    buildts: str

    def to_json(self) -> str:
        """Compact JSON with fields in declaration order."""
        return json.dumps(dataclasses.asdict(self), separators=(",", ":"))


def get_pkg_version(lockfile_text: str, pkg_name: str) -> str:
    """Return the distinct versions of a package in a Cargo-style lock file, comma separated."""
    data = tomllib.loads(lockfile_text)
    versions = {
        str(package["version"])
        for package in data.get("package", [])
        if package.get("name") == pkg_name and "version" in package
    }
    return ",".join(sorted(versions))


VERSION = Version(
    package="geyser-tools",
    version="0.1.0",
    proto=os.environ.get("YELLOWSTONE_GRPC_PROTO_VERSION", "unknown"),
    solana=os.environ.get("SOLANA_SDK_VERSION", "unknown"),
    git=os.environ.get("GIT_VERSION", "unknown"),
    rustc=platform.python_version(),
    buildts=os.environ.get("BUILD_TIMESTAMP", "unknown"),
)