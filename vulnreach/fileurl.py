"""Conversion between ``file:`` URLs and local file paths."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from urllib.parse import unquote

__all__ = ["FileURLError", "url_to_file_path", "url_from_file_path"]


class FileURLError(ValueError):
    """Raised when a URL or path cannot be converted."""


_NOT_ABSOLUTE = "path is not absolute"

_PATH_SAFE = frozenset("-_.~$&+,/:;=@")
_HOST_SAFE = frozenset("-_.~!$&'()*+,;=:[]<>\"")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_UNC_VOLUME = re.compile(r"[\\/]{2}[^\\/.][^\\/]*[\\/][^\\/.][^\\/]*")


@dataclass
class _URL:
    scheme: str = ""
    opaque: str = ""
    host: str = ""
    path: str = ""

    def __str__(self) -> str:
        parts = []
        if self.scheme:
            parts.append(self.scheme + ":")
        if self.opaque:
            parts.append(self.opaque)
            return "".join(parts)
        if self.scheme or self.host:
            if self.host or self.path:
                parts.append("//")
            parts.append(_escape(self.host, _HOST_SAFE))
        path = _escape(self.path, _PATH_SAFE)
        if path and not path.startswith("/") and self.host:
            parts.append("/")
        parts.append(path)
        return "".join(parts)


def _escape(text: str, safe: frozenset) -> str:
    out = []
    for byte in text.encode("utf-8", "surrogateescape"):
        char = chr(byte)
        if (char.isascii() and char.isalnum()) or char in safe:
            out.append(char)
        else:
            out.append(f"%{byte:02X}")
    return "".join(out)


def _unescape(text: str) -> str:
    bad = _BAD_ESCAPE.search(text)
    if bad:
        raise FileURLError(f"invalid URL escape {text[bad.start():bad.start() + 3]!r}")
    return unquote(text)


def _split_scheme(raw: str) -> tuple[str, str]:
    for i, char in enumerate(raw):
        if char.isascii() and char.isalpha():
            continue
        if char.isascii() and (char.isdigit() or char in "+-."):
            if i == 0:
                return "", raw
            continue
        if char == ":":
            if i == 0:
                raise FileURLError("missing protocol scheme")
            return raw[:i], raw[i + 1:]
        return "", raw
    return "", raw


def _parse_host(authority: str) -> str:
    host = authority.rpartition("@")[2]
    if not host.startswith("[") and ":" in host:
        port = host[host.rfind(":") + 1:]
        if port and not (port.isascii() and port.isdigit()):
            raise FileURLError(f"invalid port {':' + port!r} after host")
    return _unescape(host)


def _parse(raw: str) -> _URL:
    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in raw):
        raise FileURLError("invalid control character in URL")
    raw = raw.partition("#")[0]
    scheme, rest = _split_scheme(raw)
    scheme = scheme.lower()
    if rest.endswith("?") and rest.count("?") == 1:
        rest = rest[:-1]
    else:
        rest = rest.partition("?")[0]
    if not rest.startswith("/"):
        if scheme:
            return _URL(scheme=scheme, opaque=rest)
        if ":" in rest.partition("/")[0]:
            raise FileURLError("first path segment in URL cannot contain colon")
    host = ""
    if rest.startswith("//") and (scheme or not rest.startswith("///")):
        authority, sep, remainder = rest[2:].partition("/")
        host = _parse_host(authority)
        rest = sep + remainder
    return _URL(scheme=scheme, host=host, path=_unescape(rest))


def _is_slash(char: str, windows: bool) -> bool:
    return char == "/" or (windows and char == "\\")


def _volume_name(path: str, windows: bool) -> str:
    if not windows or len(path) < 2:
        return ""
    if path[1] == ":" and path[0].isascii() and path[0].isalpha():
        return path[:2]
    unc = _UNC_VOLUME.match(path)
    return unc.group(0) if unc else ""


def _is_abs(path: str, windows: bool) -> bool:
    if not windows:
        return path.startswith("/")
    volume = _volume_name(path, windows)
    if not volume:
        return False
    if _is_slash(path[0], windows) and _is_slash(path[1], windows):
        return True
    rest = path[len(volume):]
    return bool(rest) and _is_slash(rest[0], windows)


def _from_slash(path: str, windows: bool) -> str:
    return path.replace("/", "\\") if windows else path


def _to_slash(path: str, windows: bool) -> str:
    return path.replace("\\", "/") if windows else path


def _check_abs(path: str, windows: bool) -> str:
    if not _is_abs(path, windows):
        raise FileURLError(_NOT_ABSOLUTE)
    return path


def _convert_windows(host: str, path: str) -> str:
    if not path.startswith("/"):
        raise FileURLError(_NOT_ABSOLUTE)
    path = _from_slash(path, True)
    if host not in ("", "localhost"):
        if _volume_name(host, True):
            raise FileURLError("file URL encodes volume in host field: too few slashes?")
        return "\\\\" + host + path
    volume = _volume_name(path[1:], True)
    if not volume or volume.startswith("\\\\"):
        raise FileURLError("file URL missing drive letter")
    return path[1:]


def _default_windows(windows: bool | None) -> bool:
    return os.name == "nt" if windows is None else windows


def url_to_file_path(url: str, windows: bool | None = None) -> str:
    """Convert a ``file:`` URL to an absolute file path."""
    windows = _default_windows(windows)
    parsed = _parse(url)
    if parsed.scheme != "file":
        raise FileURLError("non-file URL")
    if parsed.path == "":
        if parsed.host or not parsed.opaque:
            raise FileURLError("file URL missing path")
        return _check_abs(_from_slash(parsed.opaque, windows), windows)
    if windows:
        path = _convert_windows(parsed.host, parsed.path)
    else:
        if parsed.host not in ("", "localhost"):
            raise FileURLError("file URL specifies non-local host")
        path = parsed.path
    return _check_abs(path, windows)


def url_from_file_path(path: str, windows: bool | None = None) -> str:
    """Convert an absolute file path to a ``file:`` URL string."""
    windows = _default_windows(windows)
    if not _is_abs(path, windows):
        raise FileURLError(_NOT_ABSOLUTE)
    volume = _volume_name(path, windows)
    if volume:
        if volume.startswith("\\\\"):
            rest = _to_slash(path[2:], windows)
            host, sep, tail = rest.partition("/")
            if not sep:
                return str(_URL(scheme="file", host=rest, path="/"))
            return str(_URL(scheme="file", host=host, path="/" + tail))
        return str(_URL(scheme="file", path="/" + _to_slash(path, windows)))
    return str(_URL(scheme="file", path=_to_slash(path, windows)))