"""XcodeGen project descriptor: targets, schemes and their embed graph."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from nativeplan.errors import DescriptorGraphError


class TargetType(StrEnum):
    APPLICATION = "application"
    WATCH_CONTAINER = "application.watchapp2-container"
    WATCH_APP = "application.watchapp2"
    WATCH_EXTENSION = "watchkit2-extension"
    APP_EXTENSION = "app-extension"
    APP_CLIP = "app-clip"


@dataclass
class SourceEntry:
    path: str
    type: str = "syncedFolder"
    optional: bool = False
    excludes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"path": self.path, "type": self.type}
        if self.optional:
            out["optional"] = True
        if self.excludes:
            out["excludes"] = list(self.excludes)
        return out


@dataclass
class Dependency:
    """An edge from the declaring target to ``target``."""

    target: str
    embed: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"target": self.target, "embed": self.embed}


@dataclass
class PropertyFile:
    """An Info.plist or entitlements file: on-disk path plus generated properties."""

    path: str
    properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "properties": copy.deepcopy(self.properties)}


@dataclass
class Target:
    name: str
    type: TargetType
    platform: str
    bundle_id: str
    sources: list[SourceEntry] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    supported_destinations: list[str] = field(default_factory=list)
    destination_filters: list[dict[str, str]] = field(default_factory=list)
    info: PropertyFile | None = None
    entitlements: PropertyFile | None = None
    dependencies: list[Dependency] = field(default_factory=list)

    def embeds(self, name: str) -> None:
        self.dependencies.append(Dependency(target=name))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value, "platform": self.platform}
        if self.supported_destinations:
            out["supportedDestinations"] = list(self.supported_destinations)
        if self.destination_filters:
            out["destinationFilters"] = [dict(f) for f in self.destination_filters]
        out["sources"] = [s.to_dict() for s in self.sources]
        out["settings"] = {"base": copy.deepcopy(self.settings)}
        if self.info is not None:
            out["info"] = self.info.to_dict()
        if self.entitlements is not None:
            out["entitlements"] = self.entitlements.to_dict()
        if self.dependencies:
            out["dependencies"] = [d.to_dict() for d in self.dependencies]
        return out


@dataclass
class Scheme:
    """Build every listed target, run ``executable``."""

    name: str
    build_targets: list[str]
    executable: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "build": {"targets": {name: "all" for name in self.build_targets}},
            "run": {"executable": self.executable},
        }


@dataclass
class ProjectDescriptor:
    name: str
    bundle_id_prefix: str
    deployment_targets: dict[str, str]
    xcode_version: str
    known_regions: list[str] = field(default_factory=list)
    targets: list[Target] = field(default_factory=list)
    schemes: list[Scheme] = field(default_factory=list)

    def target(self, name: str) -> Target:
        for t in self.targets:
            if t.name == name:
                return t
        raise KeyError(name)

    def target_names(self) -> list[str]:
        return [t.name for t in self.targets]

    def embed_edges(self) -> list[tuple[str, str]]:
        return [(t.name, d.target) for t in self.targets for d in t.dependencies]

    def validate_graph(self) -> None:
        """Reject duplicate target names, dangling embed edges, and cycles."""
        names: set[str] = set()
        for t in self.targets:
            if t.name in names:
                raise DescriptorGraphError(f"duplicate target name {t.name!r}")
            names.add(t.name)

        adjacency: dict[str, list[str]] = {t.name: [] for t in self.targets}
        for source, dest in self.embed_edges():
            if dest not in names:
                raise DescriptorGraphError(f"target {source!r} embeds unknown target {dest!r}")
            adjacency[source].append(dest)

        for scheme in self.schemes:
            for name in [*scheme.build_targets, scheme.executable]:
                if name not in names:
                    raise DescriptorGraphError(
                        f"scheme {scheme.name!r} references unknown target {name!r}"
                    )

        # 0 = unvisited, 1 = on stack, 2 = done
        state = dict.fromkeys(adjacency, 0)

        def visit(node: str, path: list[str]) -> None:
            state[node] = 1
            for nxt in adjacency[node]:
                if state[nxt] == 1:
                    cycle = " -> ".join([*path, node, nxt])
                    raise DescriptorGraphError(f"embed cycle detected: {cycle}")
                if state[nxt] == 0:
                    visit(nxt, [*path, node])
            state[node] = 2

        for node in adjacency:
            if state[node] == 0:
                visit(node, [])

    def to_dict(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "bundleIdPrefix": self.bundle_id_prefix,
            "deploymentTarget": dict(self.deployment_targets),
            "xcodeVersion": self.xcode_version,
            "createIntermediateGroups": True,
            "generateEmptyDirectories": True,
            "useBaseInternationalization": False,
        }
        if self.known_regions:
            options["knownRegions"] = list(self.known_regions)

        out: dict[str, Any] = {
            "name": self.name,
            "options": options,
            "targets": {t.name: t.to_dict() for t in self.targets},
        }
        if self.schemes:
            out["schemes"] = {s.name: s.to_dict() for s in self.schemes}
        return out
