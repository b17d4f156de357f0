"""Data types describing vulnerabilities, packages and call graphs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

RANGE_TYPE_SEMVER = "SEMVER"


@dataclass
class Position:
    """A location in a source file; valid when it has a line number."""

    filename: str = ""
    offset: int = 0
    line: int = 0
    column: int = 0

    def is_valid(self) -> bool:
        return self.line > 0

    def __str__(self) -> str:
        text = self.filename
        if self.is_valid():
            if text:
                text += ":"
            text += str(self.line)
            if self.column:
                text += f":{self.column}"
        return text or "-"


@dataclass
class RangeEvent:
    introduced: str = ""
    fixed: str = ""


@dataclass
class Range:
    type: str = RANGE_TYPE_SEMVER
    events: list[RangeEvent] = field(default_factory=list)


@dataclass
class Module:
    path: str = ""


@dataclass
class OSVPackage:
    """An affected package, optionally restricted to symbols and platforms."""

    path: str = ""
    goos: list[str] = field(default_factory=list)
    goarch: list[str] = field(default_factory=list)
    symbols: list[str] = field(default_factory=list)


@dataclass
class EcosystemSpecific:
    packages: list[OSVPackage] = field(default_factory=list)


@dataclass
class Affected:
    module: Module = field(default_factory=Module)
    ranges: list[Range] = field(default_factory=list)
    ecosystem_specific: EcosystemSpecific = field(default_factory=EcosystemSpecific)


@dataclass
class Entry:
    """A vulnerability report."""

    id: str = ""
    affected: list[Affected] = field(default_factory=list)
    withdrawn: datetime | None = None


@dataclass
class GoModule:
    path: str = ""
    version: str = ""
    replace: GoModule | None = None


@dataclass(eq=False)
class GoPackage:
    """A loaded package: its imports, module and declared symbols."""

    pkg_path: str = ""
    name: str = ""
    imports: list[GoPackage] = field(default_factory=list)
    module: GoModule | None = None
    symbols: list[str] = field(default_factory=list)
    package_pos: Position | None = None
    import_positions: dict[str, Position] = field(default_factory=dict)


@dataclass(eq=False)
class FuncNode:
    """A function in the call graph."""

    name: str = ""
    recv_type: str = ""
    package: GoPackage | None = None
    pos: Position | None = None
    call_sites: list[CallSite] = field(default_factory=list)

    @property
    def _pkg_path(self) -> str:
        return self.package.pkg_path if self.package is not None else ""

    def __str__(self) -> str:
        if not self.recv_type:
            return f"{self._pkg_path}.{self.name}"
        return f"{self.recv_type}.{self.name}"

    def receiver(self) -> str:
        """The receiver type without its package path; pointers are kept."""
        return self.recv_type.replace(f"{self._pkg_path}.", "", 1)


@dataclass(eq=False)
class CallSite:
    """A call made from ``parent``."""

    parent: FuncNode | None = None
    name: str = ""
    recv_type: str = ""
    pos: Position | None = None
    resolved: bool = False


@dataclass(eq=False)
class Vuln:
    """A vulnerable symbol tied to its place in the import and call graphs."""

    osv: Entry | None = None
    symbol: str = ""
    call_sink: FuncNode | None = None
    import_sink: GoPackage | None = None


@dataclass
class Result:
    entry_functions: list[FuncNode] = field(default_factory=list)
    entry_packages: list[GoPackage] = field(default_factory=list)
    vulns: list[Vuln] = field(default_factory=list)