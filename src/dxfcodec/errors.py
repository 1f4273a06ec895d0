from __future__ import annotations

from dataclasses import dataclass


class DXFError(Exception):
    """Base class for all codec errors."""


class MalformedGroupCode(DXFError):
    def __init__(self, line: int, text: str) -> None:
        super().__init__(f"line {line}: invalid group code {text!r}")
        self.line = line
        self.text = text


class TruncatedStream(DXFError):
    def __init__(self, line: int, reason: str = "unexpected end of stream") -> None:
        super().__init__(f"line {line}: {reason}")
        self.line = line


class TypeMismatch(DXFError, ValueError):
    pass


class UnknownTag(DXFError):
    pass


class InvalidEntity(DXFError):
    def __init__(self, dxftype: str, reason: str, handle: str = "") -> None:
        label = f"{dxftype}({handle})" if handle else dxftype
        super().__init__(f"{label}: {reason}")
        self.dxftype = dxftype
        self.reason = reason
        self.handle = handle


class NullArgument(DXFError, TypeError):
    pass


@dataclass(frozen=True)
class Diagnostic:
    """A recovered problem, reported instead of raised."""

    kind: str
    dxftype: str
    code: int | None
    line: int
    message: str

    def __str__(self) -> str:
        code = "" if self.code is None else f" code={self.code}"
        return f"{self.kind}[{self.dxftype}]{code} line={self.line}: {self.message}"
