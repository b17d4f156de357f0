"""Per-module vulnerability sets and the queries made on them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from functools import cmp_to_key

from vulnreach.model import (
    RANGE_TYPE_SEMVER,
    EcosystemSpecific,
    Entry,
    GoModule,
    OSVPackage,
    Range,
    RangeEvent,
)

GO_STD_MODULE_PATH = "stdlib"

_SEMVER = re.compile(
    r"v(0|[1-9]\d*)"
    r"(?:\.(0|[1-9]\d*)"
    r"(?:\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?)?)?"
)


def _parse_semver(version: str):
    match = _SEMVER.fullmatch(version)
    if not match:
        return None
    major, minor, patch, pre = match.groups()
    idents = tuple(pre.split(".")) if pre else ()
    if any(i.isdigit() and len(i) > 1 and i.startswith("0") for i in idents):
        return None
    return int(major), int(minor or 0), int(patch or 0), idents


def _compare_prerelease(x: tuple, y: tuple) -> int:
    if x == y:
        return 0
    if not x:
        return 1
    if not y:
        return -1
    for p, q in zip(x, y):
        if p == q:
            continue
        p_num, q_num = p.isdigit(), q.isdigit()
        if p_num and q_num:
            return -1 if int(p) < int(q) else 1
        if p_num:
            return -1
        if q_num:
            return 1
        return -1 if p < q else 1
    return -1 if len(x) < len(y) else 1


def _compare(v: str, w: str) -> int:
    a, b = _parse_semver(v), _parse_semver(w)
    if a is None or b is None:
        return (a is not None) - (b is not None)
    if a[:3] != b[:3]:
        return -1 if a[:3] < b[:3] else 1
    return _compare_prerelease(a[3], b[3])


def _canonical(version: str) -> str:
    if version.startswith("v"):
        version = version[1:]
    elif version.startswith("go"):
        version = version[2:]
    return "v" + version if version else version


def _event_version(event: RangeEvent) -> str:
    return event.introduced or event.fixed


def _event_cmp(e1: RangeEvent, e2: RangeEvent) -> int:
    first, second = e1.introduced == "0", e2.introduced == "0"
    if first or second:
        return second - first
    return _compare(_canonical(_event_version(e1)), _canonical(_event_version(e2)))


def _contains(rng: Range, version: str) -> bool:
    if rng.type != RANGE_TYPE_SEMVER:
        return False
    if not rng.events:
        return True
    version = _canonical(version)
    affected = False
    for event in sorted(rng.events, key=cmp_to_key(_event_cmp)):
        if not affected and event.introduced:
            affected = event.introduced == "0" or _compare(version, _canonical(event.introduced)) >= 0
        elif affected and event.fixed:
            affected = _compare(version, _canonical(event.fixed)) < 0
    return affected


def affects(ranges: list[Range], version: str) -> bool:
    """Report whether ``version`` falls in any semver range; no semver range means all."""
    semver_ranges = [r for r in ranges if r.type == RANGE_TYPE_SEMVER]
    if not semver_ranges:
        return True
    return any(_contains(r, version) for r in semver_ranges)


def _matches_component(value: str, allowed: list[str]) -> bool:
    return not value or not allowed or value in allowed


def matches_platform(os: str, arch: str, package: OSVPackage) -> bool:
    """Report whether a package entry applies on the given GOOS and GOARCH."""
    return _matches_component(os, package.goos) and _matches_component(arch, package.goarch)


def is_std_package(path: str) -> bool:
    """Standard library packages have no dot in their first path element."""
    if not path:
        return False
    return "." not in path.partition("/")[0]


def vuln_matches_package(entry: Entry, pkg: str) -> bool:
    """Report whether ``entry`` applies to the import path ``pkg``."""
    return any(
        p.path == pkg for a in entry.affected for p in a.ecosystem_specific.packages
    )


@dataclass
class ModVulns:
    """Vulnerabilities grouped under one module."""

    module: GoModule
    vulns: list[Entry] = field(default_factory=list)


def _filter_entry(entry: Entry, module_path: str, version: str, os: str, arch: str):
    if entry.withdrawn is not None and entry.withdrawn < datetime.now(entry.withdrawn.tzinfo):
        return None
    kept = []
    for affected in entry.affected:
        # Other modules named in the same report would skew the results.
        if affected.module.path != module_path:
            continue
        # An unknown module version is not reported, to avoid false alarms.
        if not version or not affects(affected.ranges, version):
            continue
        packages = affected.ecosystem_specific.packages
        matching = [p for p in packages if matches_platform(os, arch, p)]
        if packages and not matching:
            continue
        kept.append(replace(affected, ecosystem_specific=EcosystemSpecific(packages=matching)))
    return replace(entry, affected=kept) if kept else None


class ModuleVulnerabilities(list):
    """A list of :class:`ModVulns` with lookup by package and symbol."""

    def filter(self, os: str, arch: str) -> ModuleVulnerabilities:
        """Keep only vulnerabilities that affect each module's version and platform."""
        filtered = ModuleVulnerabilities()
        for mod in self:
            module = mod.module
            version = module.replace.version if module.replace is not None else module.version
            entries = (_filter_entry(v, module.path, version, os, arch) for v in mod.vulns)
            filtered.append(ModVulns(module=module, vulns=[e for e in entries if e is not None]))
        return filtered

    def _module_for(self, import_path: str) -> ModVulns | None:
        is_std = is_std_package(import_path)
        best = None
        for mod in self:
            if is_std and mod.module.path == GO_STD_MODULE_PATH:
                best = mod
            elif import_path.startswith(mod.module.path):
                if best is None or len(best.module.path) < len(mod.module.path):
                    best = mod
        return best

    def vulns_for_package(self, import_path: str) -> list[Entry]:
        """Vulnerabilities of the most specific module containing ``import_path``."""
        mod = self._module_for(import_path)
        if mod is None:
            return []
        if mod.module.replace is not None:
            import_path = mod.module.replace.path + import_path.removeprefix(mod.module.path)
        return [v for v in mod.vulns if vuln_matches_package(v, import_path)]

    def vulns_for_symbol(self, import_path: str, symbol: str) -> list[Entry]:
        """Vulnerabilities of ``import_path`` that cover ``symbol``."""
        return [
            v
            for v in self.vulns_for_package(import_path)
            if any(
                p.path == import_path and (not p.symbols or symbol in p.symbols)
                for a in v.affected
                for p in a.ecosystem_specific.packages
            )
        ]