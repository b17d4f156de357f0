import pytest

from vulnreach.model import FuncNode, GoPackage, Position


@pytest.mark.parametrize(
    "recv_type,want",
    [
        ("", ""),
        ("*example.com/a/pkg.Atype", "*Atype"),
        ("example.com/a/pkg.Atype", "Atype"),
        ("Atype", "Atype"),
    ],
    ids=["empty", "pointer", "not pointer", "no prefix"],
)
def test_receiver(recv_type, want):
    fn = FuncNode(recv_type=recv_type, package=GoPackage(pkg_path="example.com/a/pkg"))
    assert fn.receiver() == want


def test_func_node_str_without_receiver():
    fn = FuncNode(name="C1", package=GoPackage(pkg_path="example.org/cmod/c"))
    assert str(fn) == "example.org/cmod/c.C1"


def test_func_node_str_with_receiver():
    fn = FuncNode(name="Vuln1", recv_type="example.org/amod/avuln.VulnData",
                  package=GoPackage(pkg_path="example.org/amod/avuln"))
    assert str(fn) == "example.org/amod/avuln.VulnData.Vuln1"


def test_position_validity():
    assert Position(filename="x.go", line=2, column=4).is_valid() is True
    assert Position().is_valid() is False


def test_position_str():
    assert str(Position(filename="x.go", line=2, column=4)) == "x.go:2:4"
    assert str(Position()) == "-"


def test_nodes_compare_by_identity():
    a = FuncNode(name="f")
    b = FuncNode(name="f")
    assert a != b
    assert len({a, b}) == 2