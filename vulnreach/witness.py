"""Representative call stacks from entry points to vulnerable symbols."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from functools import cmp_to_key

from vulnreach.model import CallSite, FuncNode, GoPackage, Position, Result, Vuln

__all__ = [
    "StackEntry",
    "call_stacks",
    "pos_less",
    "call_site_less",
    "func_less",
    "weight",
    "is_init",
]


@dataclass
class StackEntry:
    """One frame of a call stack.

    ``call`` is the call site inducing the next frame; it is ``None``
    for the last frame of the stack.
    """

    function: FuncNode
    call: CallSite | None = None


@dataclass(eq=False)
class _Chain:
    f: FuncNode
    call: CallSite | None = None
    child: _Chain | None = None

    def to_stack(self) -> list[StackEntry]:
        stack = []
        link: _Chain | None = self
        while link is not None:
            stack.append(StackEntry(function=link.f, call=link.call))
            link = link.child
        return stack


def call_stacks(res: Result) -> dict[Vuln, list[StackEntry]]:
    """Return a representative call stack for each vulnerability in ``res``.

    Shorter stacks with fewer dynamic call sites are preferred. Each
    function is visited at most once, so not every stack is considered.
    """
    stacks = {vuln: _call_stack(vuln, res) for vuln in res.vulns}
    _update_init_positions(stacks)
    return stacks


def _call_stack(vuln: Vuln, res: Result) -> list[StackEntry]:
    sink = vuln.call_sink
    if sink is None:
        return []

    entries = {id(e) for e in res.entry_functions}
    seen: set[int] = set()

    # Avoid stacks passing through other vulnerable symbols of the same
    # package for the same vulnerability.
    skip = {
        id(v.call_sink)
        for v in res.vulns
        if v.call_sink is not None
        and v is not vuln
        and v.osv is vuln.osv
        and v.import_sink is vuln.import_sink
    }

    candidates: list[list[StackEntry]] = []
    depth = 0
    queue: deque[_Chain] = deque([_Chain(f=sink)])
    while queue:
        chain = queue.popleft()
        f = chain.f
        if id(f) in seen:
            continue
        seen.add(id(f))

        for site in _callsites(f.call_sites, seen):
            link = _Chain(f=site.parent, call=site, child=chain)
            if id(site.parent) not in skip:
                queue.append(link)
            if id(site.parent) in entries:
                stack = link.to_stack()
                if not candidates or len(stack) == depth:
                    candidates.append(stack)
                    depth = len(stack)
                else:
                    # Longer than what was found already: nothing better remains.
                    queue.clear()

    if not candidates:
        return []
    return min(candidates, key=weight)


def _less_to_cmp(less):
    def compare(a, b) -> int:
        ab, ba = less(a, b), less(b, a)
        if ab and not ba:
            return -1
        if ba and not ab:
            return 1
        return 0

    return compare


def _callsites(sites: list[CallSite], visited: set[int]) -> list[CallSite]:
    """Pick the smallest call site per unvisited caller, ordered by caller."""
    smallest: dict[int, CallSite] = {}
    for site in sites:
        key = id(site.parent)
        if key in visited:
            continue
        if call_site_less(site, smallest.get(key)):
            smallest[key] = site
    return sorted(
        smallest.values(),
        key=cmp_to_key(lambda a, b: _less_to_cmp(func_less)(a.parent, b.parent)),
    )


def weight(stack: list[StackEntry]) -> int:
    """Number of unresolved call sites in ``stack``; lower reads more easily."""
    return sum(1 for e in stack if e.call is not None and not e.call.resolved)


def call_site_less(cs1: CallSite, cs2: CallSite | None) -> bool:
    """Order call sites by position, then by their textual form."""
    if cs2 is None:
        return True
    p1, p2 = cs1.pos, cs2.pos
    if p1 is not None and p2 is not None:
        if pos_less(p1, p2):
            return True
        if pos_less(p2, p1):
            return False
        return f"{cs1.recv_type}.{cs2.name}" < f"{cs2.recv_type}.{cs2.name}"
    if p2 is None:
        return True
    if p1 is None:
        return False
    return f"{cs1.recv_type}.{cs2.name}" < f"{cs2.recv_type}.{cs2.name}"


def pos_less(p1: Position, p2: Position) -> bool:
    """Order positions by line, column and then file name."""
    if p1.line != p2.line:
        return p1.line < p2.line
    if p1.column != p2.column:
        return p1.column < p2.column
    return p1.filename < p2.filename


def func_less(f1: FuncNode, f2: FuncNode) -> bool:
    """Order functions by position, then by their string form."""
    p1, p2 = f1.pos, f2.pos
    if p1 is not None and p2 is not None:
        if pos_less(p1, p2):
            return True
        if pos_less(p2, p1):
            return False
        return str(f1) < str(f2)
    if p2 is None:
        return True
    if p1 is None:
        return False
    return str(f1) < str(f2)


def is_init(f: FuncNode) -> bool:
    """Report whether ``f`` is an implicit ``init`` or a numbered ``init#n``."""
    return f.name == "init" or f.name.startswith("init#")


def _package_statement_pos(pkg: GoPackage | None) -> Position:
    if pkg is None or pkg.package_pos is None:
        return Position()
    return replace(pkg.package_pos)


def _import_statement_pos(pkg: GoPackage | None, import_path: str) -> Position:
    if pkg is None:
        return Position()
    pos = pkg.import_positions.get(import_path)
    return replace(pos) if pos is not None else Position()


def _has_valid(pos: Position | None) -> bool:
    return pos is not None and pos.is_valid()


def _update_init_position(entry: StackEntry) -> None:
    fun = entry.function
    if not is_init(fun) or _has_valid(fun.pos):
        return
    fun.pos = _package_statement_pos(fun.package)


def _update_init_call_position(curr: StackEntry, nxt: StackEntry) -> None:
    call = curr.call
    if call is None or not is_init(nxt.function) or _has_valid(call.pos):
        return
    if curr.function.name == "init" and curr.function.package is nxt.function.package:
        # An implicit init calls the explicit one at the package statement.
        call.pos = _package_statement_pos(curr.function.package)
    else:
        path = nxt.function.package.pkg_path if nxt.function.package is not None else ""
        call.pos = _import_statement_pos(curr.function.package, path)


def _update_init_positions(stacks: dict[Vuln, list[StackEntry]]) -> None:
    for stack in stacks.values():
        for curr, nxt in zip(stack, stack[1:] + [None]):
            _update_init_position(curr)
            if nxt is not None:
                _update_init_call_position(curr, nxt)