"""Slicing of import and call graphs down to what reaches known vulnerabilities."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, MutableMapping
from dataclasses import dataclass, field, replace

from vulnreach.model import (
    CallSite,
    Entry,
    FuncNode,
    GoModule,
    GoPackage,
    Position,
    Result,
    Vuln,
)
from vulnreach.vulnerabilities import ModuleVulnerabilities, vuln_matches_package

__all__ = [
    "Function",
    "CallInstruction",
    "CallEdge",
    "CallGraphNode",
    "CallGraph",
    "db_func_name",
    "call_graph_slice",
    "vuln_funcs",
    "vuln_pkg_slice",
    "vuln_call_graph_slice",
    "extract_modules",
    "analyze",
]

_NAMED = re.compile(r"[\w.~/-]+")
_QUALIFIER = re.compile(r"(?:[\w.~-]+/)*[\w~-]+\.(?=[A-Za-z_])")


@dataclass(eq=False)
class Function:
    """A function of the analysed program as seen by the call graph.

    ``recv_type`` is the full receiver type of a method, such as
    ``*example.com/p.T``. Synthetic wrappers record their kind in
    ``synthetic`` (``"bound ..."`` or ``"thunk ..."``) and the type they
    wrap in ``wrapped_type``.
    """

    name: str
    pkg_path: str = ""
    recv_type: str = ""
    pos: Position | None = None
    synthetic: str = ""
    wrapped_type: str = ""


@dataclass(eq=False)
class CallInstruction:
    """A call instruction; ``recv_type`` is set for interface invocations."""

    name: str = ""
    recv_type: str = ""
    resolved: bool = True
    pos: Position | None = None


@dataclass(eq=False)
class CallEdge:
    caller: CallGraphNode
    site: CallInstruction | None
    callee: CallGraphNode


@dataclass(eq=False)
class CallGraphNode:
    func: Function
    in_edges: list[CallEdge] = field(default_factory=list)
    out_edges: list[CallEdge] = field(default_factory=list)


@dataclass
class CallGraph:
    """A call graph with one node per function."""

    nodes: dict[Function, CallGraphNode] = field(default_factory=dict)

    def create_node(self, func: Function) -> CallGraphNode:
        """Return the node of ``func``, creating it if needed."""
        node = self.nodes.get(func)
        if node is None:
            node = CallGraphNode(func=func)
            self.nodes[func] = node
        return node

    def add_edge(
        self, caller: CallGraphNode, site: CallInstruction | None, callee: CallGraphNode
    ) -> CallEdge:
        """Connect ``caller`` to ``callee`` through ``site``."""
        edge = CallEdge(caller=caller, site=site, callee=callee)
        caller.out_edges.append(edge)
        callee.in_edges.append(edge)
        return edge


def _db_type_format(type_name: str) -> str:
    """Format a type the way vulnerability databases name it."""
    name = type_name.lstrip("*")
    base = name.partition("[")[0]
    if base and base != "map" and _NAMED.fullmatch(base):
        return base.rpartition(".")[2]
    return _QUALIFIER.sub("", name)


def db_func_name(func: Function) -> str:
    """Name of ``func`` local to its package, e.g. ``T.method`` or ``fn``.

    Pointer receivers are not distinguished and package paths are dropped.
    """
    prefix = ""
    if func.recv_type:
        prefix = _db_type_format(func.recv_type)
    elif func.wrapped_type and (
        func.synthetic.startswith("bound ") or func.synthetic.startswith("thunk ")
    ):
        prefix = _db_type_format(func.wrapped_type)
    if not prefix:
        return func.name
    return f"{prefix}.{func.name}"


def call_graph_slice(starts: Iterable[CallGraphNode], forward: bool) -> CallGraph:
    """The part of a call graph reachable from ``starts``, forwards or backwards."""
    graph = CallGraph()
    visited: set[CallGraphNode] = set()

    def edges(node: CallGraphNode) -> Iterator[CallEdge]:
        return iter(node.out_edges if forward else node.in_edges)

    for start in starts:
        if start in visited:
            continue
        visited.add(start)
        stack = [edges(start)]
        while stack:
            edge = next(stack[-1], None)
            if edge is None:
                stack.pop()
                continue
            callee = graph.create_node(edge.callee.func)
            caller = graph.create_node(edge.caller.func)
            graph.add_edge(caller, edge.site, callee)
            following = edge.callee if forward else edge.caller
            if following not in visited:
                visited.add(following)
                stack.append(edges(following))
    return graph


def vuln_funcs(
    cg: CallGraph, mod_vulns: ModuleVulnerabilities
) -> dict[CallGraphNode, list[Entry]]:
    """Map each vulnerable function's node in ``cg`` to its vulnerabilities."""
    found = {}
    for func, node in cg.nodes.items():
        vulns = mod_vulns.vulns_for_symbol(func.pkg_path, db_func_name(func))
        if vulns:
            found[node] = vulns
    return found


def _import_slice(
    pkg: GoPackage,
    mod_vulns: ModuleVulnerabilities,
    result: Result,
    analyzed: dict[GoPackage, bool],
) -> bool:
    if pkg in analyzed:
        return analyzed[pkg]
    analyzed[pkg] = False
    transitive = False
    for imp in pkg.imports:
        if _import_slice(imp, mod_vulns, result, analyzed):
            transitive = True

    vulns = mod_vulns.vulns_for_package(pkg.pkg_path)
    if not transitive and not vulns:
        return False

    for entry in vulns:
        for affected in entry.affected:
            for package in affected.ecosystem_specific.packages:
                if package.path != pkg.pkg_path:
                    continue
                for symbol in package.symbols or pkg.symbols:
                    result.vulns.append(Vuln(osv=entry, symbol=symbol, import_sink=pkg))
    analyzed[pkg] = True
    return True


def vuln_pkg_slice(
    pkgs: Iterable[GoPackage], mod_vulns: ModuleVulnerabilities, result: Result
) -> None:
    """Record vulnerable imports of ``pkgs`` and the packages leading to them."""
    analyzed: dict[GoPackage, bool] = {}
    for pkg in pkgs:
        if _import_slice(pkg, mod_vulns, result, analyzed):
            result.entry_packages.append(pkg)


def _package_for(packages: MutableMapping[str, GoPackage], path: str) -> GoPackage:
    pkg = packages.get(path)
    if pkg is None:
        pkg = GoPackage(pkg_path=path, name=path.rpartition("/")[2])
        packages[path] = pkg
    return pkg


def _position(pos: Position | None) -> Position:
    return replace(pos) if pos is not None else Position()


def _func_node(
    nodes: dict[Function, FuncNode],
    func: Function,
    packages: MutableMapping[str, GoPackage],
) -> FuncNode:
    node = nodes.get(func)
    if node is None:
        node = FuncNode(
            name=func.name,
            recv_type=func.recv_type,
            package=_package_for(packages, func.pkg_path),
            pos=_position(func.pos),
        )
        nodes[func] = node
    return node


def _add_call_sink(call: FuncNode, entry: Entry, symbol: str, pkg: str, result: Result) -> None:
    for vuln in result.vulns:
        if (
            vuln.osv is entry
            and vuln.symbol == symbol
            and vuln.import_sink is not None
            and vuln.import_sink.pkg_path == pkg
        ):
            vuln.call_sink = call
            return


def _call_site(site: CallInstruction | None, parent: FuncNode) -> CallSite:
    if site is None:
        return CallSite(parent=parent, resolved=True, pos=Position())
    return CallSite(
        parent=parent,
        name=site.name,
        recv_type=site.recv_type,
        resolved=site.resolved,
        pos=_position(site.pos),
    )


def _vuln_call_graph(
    sources: list[CallGraphNode],
    sinks: dict[CallGraphNode, list[Entry]],
    result: Result,
    packages: MutableMapping[str, GoPackage],
) -> None:
    nodes: dict[Function, FuncNode] = {}
    for source in sources:
        result.entry_functions.append(_func_node(nodes, source.func, packages))

    for sink, vulns in sinks.items():
        fun_node = _func_node(nodes, sink.func, packages)
        pkg_path = fun_node.package.pkg_path
        for entry in vulns:
            if vuln_matches_package(entry, pkg_path):
                _add_call_sink(fun_node, entry, db_func_name(sink.func), pkg_path, result)

    visited: set[CallGraphNode] = set()
    pending = list(sinks)
    while pending:
        node = pending.pop()
        if node in visited:
            continue
        visited.add(node)
        for edge in node.in_edges:
            callee = _func_node(nodes, edge.callee.func, packages)
            caller = _func_node(nodes, edge.caller.func, packages)
            callee.call_sites.append(_call_site(edge.site, caller))
            pending.append(edge.caller)


def vuln_call_graph_slice(
    sources: Iterable[Function],
    mod_vulns: ModuleVulnerabilities,
    cg: CallGraph,
    result: Result,
    packages: MutableMapping[str, GoPackage],
) -> None:
    """Record how vulnerable functions are reached from ``sources`` in ``cg``."""
    sinks_with_vulns = vuln_funcs(cg, mod_vulns)

    backward = call_graph_slice(list(sinks_with_vulns), False)
    filtered_sources = [backward.nodes[s] for s in sources if s in backward.nodes]
    forward = call_graph_slice(filtered_sources, True)

    filtered_sinks = {
        forward.nodes[node.func]: vulns
        for node, vulns in sinks_with_vulns.items()
        if node.func in forward.nodes
    }
    _vuln_call_graph(filtered_sources, filtered_sinks, result, packages)


def extract_modules(pkgs: Iterable[GoPackage]) -> list[GoModule]:
    """Modules of ``pkgs`` and their imports, unique by (replacement) path."""
    modules: dict[str, GoModule] = {}
    seen: set[GoPackage] = set()
    pending = list(pkgs)[::-1]
    while pending:
        pkg = pending.pop()
        if pkg is None or pkg in seen:
            continue
        seen.add(pkg)
        if pkg.module is not None:
            key = pkg.module.replace.path if pkg.module.replace is not None else pkg.module.path
            modules[key] = pkg.module
        pending.extend(reversed(pkg.imports))
    return list(modules.values())


def analyze(
    pkgs: list[GoPackage],
    mod_vulns: Iterable,
    entries: Iterable[Function],
    cg: CallGraph | None,
    packages: MutableMapping[str, GoPackage],
    want_symbols: bool,
) -> Result:
    """Find vulnerable imports of ``pkgs`` and, if wanted, vulnerable calls from ``entries``."""
    filtered = ModuleVulnerabilities(mod_vulns).filter("", "")
    result = Result()
    vuln_pkg_slice(pkgs, filtered, result)
    if not want_symbols or not result.entry_packages:
        return result
    if cg is None:
        raise ValueError("a call graph is required for symbol-level analysis")
    vuln_call_graph_slice(entries, filtered, cg, result, packages)
    return result