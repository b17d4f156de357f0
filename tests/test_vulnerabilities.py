from datetime import datetime, timedelta

import pytest

from vulnreach.model import (
    RANGE_TYPE_SEMVER,
    Affected,
    EcosystemSpecific,
    Entry,
    GoModule,
    Module,
    OSVPackage,
    Range,
    RangeEvent,
)
from vulnreach.vulnerabilities import (
    ModuleVulnerabilities,
    ModVulns,
    affects,
    is_std_package,
    matches_platform,
    vuln_matches_package,
)


def sv(*events):
    return [Range(type=RANGE_TYPE_SEMVER, events=list(events))]


def intro(v):
    return RangeEvent(introduced=v)


def fixed(v):
    return RangeEvent(fixed=v)


def plat(goos=(), goarch=()):
    return EcosystemSpecific(packages=[OSVPackage(goos=list(goos), goarch=list(goarch))])


def aff(path, ranges=None, eco=None):
    return Affected(module=Module(path=path), ranges=ranges or [],
                    ecosystem_specific=eco or EcosystemSpecific())


def pkg_aff(mod_path, pkg_path, symbols=()):
    return aff(mod_path, eco=EcosystemSpecific(
        packages=[OSVPackage(path=pkg_path, symbols=list(symbols))]))


def test_filter_vulns():
    past = datetime.now() - timedelta(hours=3)
    mv = ModuleVulnerabilities([
        ModVulns(GoModule(path="example.mod/a", version="v1.0.0"), [
            Entry(id="a", affected=[
                aff("example.mod/a", sv(intro("1.0.0"), fixed("2.0.0"))),
                aff("a.example.mod/a", sv(intro("1.0.0"), fixed("2.0.0"))),
                aff("example.mod/a", sv(intro("0"), fixed("0.9.0"))),
            ]),
            Entry(id="b", affected=[aff("example.mod/a", sv(intro("1.0.1")),
                                        plat(goos=["windows", "linux"]))]),
            Entry(id="c", affected=[aff("example.mod/a", sv(intro("1.0.0"), fixed("1.0.1")),
                                        plat(goarch=["arm64", "amd64"]))]),
            Entry(id="d", affected=[aff("example.mod/a", eco=plat(goos=["windows"]))]),
        ]),
        ModVulns(GoModule(path="example.mod/b", version="v1.0.0"), [
            Entry(id="e", affected=[aff("example.mod/b", eco=plat(goarch=["arm64"]))]),
            Entry(id="f", affected=[aff("example.mod/b", eco=plat(goos=["linux"]))]),
            Entry(id="g", affected=[aff("example.mod/b", sv(intro("0.0.1"), fixed("2.0.1")),
                                        plat(goarch=["amd64"]))]),
            Entry(id="h", affected=[aff("example.mod/b",
                                        eco=plat(goos=["windows"], goarch=["amd64"]))]),
        ]),
        ModVulns(GoModule(path="example.mod/c"), [
            Entry(id="i", affected=[aff("example.mod/c", sv(intro("0.0.0")),
                                        plat(goarch=["amd64"]))]),
            Entry(id="j", affected=[aff("example.mod/c", sv(fixed("3.0.0")),
                                        plat(goarch=["amd64"]))]),
            Entry(id="k"),
        ]),
        ModVulns(GoModule(path="example.mod/d", version="v1.2.0"), [
            Entry(id="l", affected=[
                aff("example.mod/d", eco=plat(goos=["windows"])),
                aff("example.mod/d", eco=plat(goos=["linux"])),
            ]),
        ]),
        ModVulns(GoModule(path="example.mod/w", version="v1.3.0"), [
            Entry(id="m", withdrawn=past,
                  affected=[aff("example.mod/w", eco=plat(goos=["linux"]))]),
            Entry(id="n", affected=[aff("example.mod/w", eco=plat(goos=["linux"]))]),
        ]),
    ])

    expected = ModuleVulnerabilities([
        ModVulns(GoModule(path="example.mod/a", version="v1.0.0"), [
            Entry(id="a", affected=[aff("example.mod/a", sv(intro("1.0.0"), fixed("2.0.0")))]),
            Entry(id="c", affected=[aff("example.mod/a", sv(intro("1.0.0"), fixed("1.0.1")),
                                        plat(goarch=["arm64", "amd64"]))]),
        ]),
        ModVulns(GoModule(path="example.mod/b", version="v1.0.0"), [
            Entry(id="f", affected=[aff("example.mod/b", eco=plat(goos=["linux"]))]),
            Entry(id="g", affected=[aff("example.mod/b", sv(intro("0.0.1"), fixed("2.0.1")),
                                        plat(goarch=["amd64"]))]),
        ]),
        ModVulns(GoModule(path="example.mod/c")),
        ModVulns(GoModule(path="example.mod/d", version="v1.2.0"), [
            Entry(id="l", affected=[aff("example.mod/d", eco=plat(goos=["linux"]))]),
        ]),
        ModVulns(GoModule(path="example.mod/w", version="v1.3.0"), [
            Entry(id="n", affected=[aff("example.mod/w", eco=plat(goos=["linux"]))]),
        ]),
    ])

    filtered = mv.filter("linux", "amd64")
    assert filtered == expected
    # The input is left untouched.
    assert len(mv[0].vulns[0].affected) == 3


def test_vulns_for_package():
    mv = ModuleVulnerabilities([
        ModVulns(GoModule(path="example.mod/a", version="v1.0.0"),
                 [Entry(id="a", affected=[pkg_aff("example.mod/a", "example.mod/a/b/c")])]),
        ModVulns(GoModule(path="example.mod/a/b", version="v1.0.0"),
                 [Entry(id="b", affected=[pkg_aff("example.mod/a/b", "example.mod/a/b/c")])]),
        ModVulns(GoModule(path="example.mod/d", version="v0.0.1"),
                 [Entry(id="d", affected=[pkg_aff("example.mod/d", "example.mod/d")])]),
    ])
    expected = [Entry(id="b", affected=[pkg_aff("example.mod/a/b", "example.mod/a/b/c")])]
    assert mv.vulns_for_package("example.mod/a/b/c") == expected


def test_vulns_for_package_replaced():
    mv = ModuleVulnerabilities([
        ModVulns(GoModule(path="example.mod/a", version="v1.0.0"),
                 [Entry(id="a", affected=[pkg_aff("example.mod/a", "example.mod/a/b/c")])]),
        ModVulns(GoModule(path="example.mod/a/b", version="v1.0.0",
                          replace=GoModule(path="example.mod/b")),
                 [Entry(id="c", affected=[pkg_aff("example.mod/b", "example.mod/b/c")])]),
    ])
    expected = [Entry(id="c", affected=[pkg_aff("example.mod/b", "example.mod/b/c")])]
    assert mv.vulns_for_package("example.mod/a/b/c") == expected


def test_vulns_for_symbol():
    mv = ModuleVulnerabilities([
        ModVulns(GoModule(path="example.mod/a", version="v1.0.0"),
                 [Entry(id="a", affected=[pkg_aff("example.mod/a", "example.mod/a/b/c")])]),
        ModVulns(GoModule(path="example.mod/a/b", version="v1.0.0"), [
            Entry(id="b", affected=[pkg_aff("example.mod/a/b", "example.mod/a/b/c", ["a"])]),
            Entry(id="c", affected=[pkg_aff("example.mod/a/b", "example.mod/a/b/c", ["b"])]),
        ]),
    ])
    expected = [Entry(id="b", affected=[pkg_aff("example.mod/a/b", "example.mod/a/b/c", ["a"])])]
    assert mv.vulns_for_symbol("example.mod/a/b/c", "a") == expected


def test_vulns_for_std_package():
    entry = Entry(id="STD", affected=[pkg_aff("stdlib", "archive/zip", ["OpenReader"])])
    mv = ModuleVulnerabilities([ModVulns(GoModule(path="stdlib"), [entry])])
    assert mv.vulns_for_package("archive/zip") == [entry]
    assert mv.vulns_for_symbol("archive/zip", "OpenReader") == [entry]
    assert mv.vulns_for_symbol("archive/zip", "NewReader") == []


def test_vulns_for_unknown_package():
    mv = ModuleVulnerabilities([ModVulns(GoModule(path="example.mod/a"), [])])
    assert mv.vulns_for_package("other.mod/x") == []


@pytest.mark.parametrize("version,want", [
    ("v1.0.3", True), ("v1.0.4", False), ("v0.9.0", False), ("v1.1.1", False), ("v1.1.3", True),
])
def test_affects_multiple_introductions(version, want):
    ranges = sv(intro("1.0.0"), fixed("1.0.4"), intro("1.1.2"))
    assert affects(ranges, version) is want


def test_affects_without_ranges_or_events():
    assert affects([], "v1.0.0") is True
    assert affects(sv(), "v1.0.0") is True
    assert affects([Range(type="GIT", events=[intro("abc")])], "v1.0.0") is True


def test_affects_unsorted_events_and_prefixes():
    assert affects(sv(fixed("2.0.0"), intro("1.0.0")), "v1.5.0") is True
    assert affects(sv(intro("1.18")), "go1.20") is True
    assert affects(sv(intro("1.18")), "go1.17") is False


def test_affects_prerelease():
    assert affects(sv(intro("0"), fixed("1.0.0")), "v1.0.0-rc1") is True
    assert affects(sv(intro("0"), fixed("1.0.0")), "v1.0.0") is False


def test_matches_platform():
    pkg = OSVPackage(goos=["linux"], goarch=["amd64"])
    assert matches_platform("linux", "amd64", pkg) is True
    assert matches_platform("windows", "amd64", pkg) is False
    assert matches_platform("", "", pkg) is True
    assert matches_platform("plan9", "386", OSVPackage()) is True


@pytest.mark.parametrize("path,want", [
    ("archive/zip", True), ("fmt", True), ("", False),
    ("example.org/x/tools", False), ("example.mod/a/b", False),
])
def test_is_std_package(path, want):
    assert is_std_package(path) is want


def test_vuln_matches_package():
    entry = Entry(id="V", affected=[pkg_aff("example.org/vmod", "example.org/vmod/vuln")])
    assert vuln_matches_package(entry, "example.org/vmod/vuln") is True
    assert vuln_matches_package(entry, "example.org/vmod") is False