# vulnreach

`vulnreach` works out whether known vulnerabilities, described as OSV
entries, are reachable from your code. Given the packages a program
imports, the modules they belong to and a call graph of the program, it
reports:

- which vulnerable packages are imported, directly or transitively;
- which vulnerable functions and methods are reached through calls;
- one representative call stack per vulnerability, leading from an entry
  function to the vulnerable symbol.

The package uses only the standard library.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `vulnreach.model`

Plain dataclasses for the data the analysis works on:

- OSV entries: `Entry` (with `id`, `affected` and an optional `withdrawn`
  time), `Affected`, `Module`, `Range`, `RangeEvent`, `EcosystemSpecific`
  and `OSVPackage` (a package path with optional `goos`, `goarch` and
  `symbols` restrictions).
- The analysed code: `GoModule` (path, version, optional `replace`) and
  `GoPackage` (import path, imports, module, declared `symbols`, and the
  positions of its package statement and import statements).
- Results: `Result` (`entry_functions`, `entry_packages`, `vulns`),
  `Vuln`, `FuncNode`, `CallSite` and `Position`.
  `FuncNode.receiver()` gives the receiver type with the package path
  removed, keeping any pointer mark; `Position.is_valid()` is true when a
  line number is set.

### `vulnreach.vulnerabilities`

- `ModVulns` groups entries under one `GoModule`.
- `ModuleVulnerabilities` is a list of `ModVulns` with:
  - `filter(os, arch)`: drops withdrawn entries, affected blocks for other
    modules, modules without a version, versions outside the semver
    ranges, and packages that do not match the platform (an empty `os` or
    `arch` matches everything);
  - `vulns_for_package(import_path)`: entries of the module whose path is
    the longest prefix of `import_path`, following module replacements;
    standard-library paths are looked up under the module path `stdlib`;
  - `vulns_for_symbol(import_path, symbol)`: those entries that cover the
    symbol (an entry listing no symbols covers all of them).
- Helpers: `affects(ranges, version)`, `matches_platform(os, arch,
  package)`, `is_std_package(path)` and `vuln_matches_package(entry, pkg)`.

### `vulnreach.slicing`

A call graph model (`Function`, `CallInstruction`, `CallEdge`,
`CallGraphNode`, `CallGraph` with `create_node` and `add_edge`) and the
slicing steps built on it:

- `db_func_name(func)`: the name a vulnerability database uses for a
  function, such as `T.method` or `fn`;
- `call_graph_slice(starts, forward)`: the part of a graph reachable from
  some nodes, forwards or backwards;
- `vuln_funcs(cg, mod_vulns)`: the vulnerable functions of a graph;
- `vuln_pkg_slice(pkgs, mod_vulns, result)`: vulnerable imports and the
  entry packages leading to them;
- `vuln_call_graph_slice(sources, mod_vulns, cg, result, packages)`:
  vulnerable functions reached from the entry functions;
- `extract_modules(pkgs)`: the distinct modules of the packages and their
  imports;
- `analyze(pkgs, mod_vulns, entries, cg, packages, want_symbols)`: the
  whole pipeline. It filters `mod_vulns`, slices the imports and, when
  `want_symbols` is true and a vulnerable package is imported, slices the
  call graph too; it raises `ValueError` if no call graph was given then.

### `vulnreach.witness`

`call_stacks(result)` maps each `Vuln` of a `Result` to a list of
`StackEntry` frames, from an entry function to the vulnerable function.
The stack chosen is one of the shortest, and among those the one with the
fewest unresolved call sites. Missing positions of `init` functions and
of calls to them are filled in from the package and import statement
positions of the `GoPackage`. The orderings it relies on are available as
`pos_less`, `call_site_less`, `func_less`, `weight` and `is_init`.

### `vulnreach.fileurl`

`url_to_file_path(url, windows=None)` and `url_from_file_path(path,
windows=None)` convert between `file:` URLs and absolute paths, under
POSIX or Windows rules (`windows=None` follows the running system).
Failures raise `FileURLError`, a `ValueError`.

## Example

```python
from vulnreach.model import (
    Affected, CallSite, Entry, FuncNode, GoModule, GoPackage, Module,
    Range, RangeEvent, Result, Vuln,
)
from vulnreach.vulnerabilities import ModVulns, ModuleVulnerabilities
from vulnreach.witness import call_stacks

entry = Entry(
    id="a",
    affected=[
        Affected(
            module=Module(path="example.mod/a"),
            ranges=[Range(type="SEMVER", events=[RangeEvent(introduced="1.0.0"),
                                                 RangeEvent(fixed="2.0.0")])],
        )
    ],
)
mv = ModuleVulnerabilities(
    [ModVulns(module=GoModule(path="example.mod/a", version="v1.0.0"), vulns=[entry])]
)
relevant = mv.filter("linux", "amd64")

main = FuncNode(name="main")
sink = FuncNode(name="Vuln", call_sites=[CallSite(parent=main, resolved=True)])
vuln = Vuln(osv=entry, symbol="Vuln", call_sink=sink,
            import_sink=GoPackage(pkg_path="example.mod/a"))
stack = call_stacks(Result(entry_functions=[main], vulns=[vuln]))[vuln]
print(" -> ".join(frame.function.name for frame in stack))  # main -> Vuln
```

## What it does not do

`vulnreach` works on data you hand it. It does not load or type-check
source code, does not build call graphs, does not fetch entries from a
vulnerability database and has no command-line program. The packages,
`Function` nodes, `CallGraph` and OSV entries must be built by the caller.