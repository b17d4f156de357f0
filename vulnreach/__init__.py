"""Reachability analysis of known vulnerabilities through import and call graphs, with file URL helpers."""

__version__ = "0.1.0"
__all__ = ["fileurl", "model", "vulnerabilities", "witness", "slicing"]