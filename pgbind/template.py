"""A small interpolation language for generating text.

Patterns are plain text with these interpolations:

- ``$var`` or ``${var}``: the value of ``var``, formatted with ``str``.
- ``$!lazy`` or ``$!{lazy}``: calls ``lazy(out)`` at that point, where ``out``
  is the output stream, so the callable can write into it.
- ``$( ... )``: repetition. Every variable interpolated in the body must be
  iterable; the body is emitted once per element of the zipped iterables,
  with each variable bound to the current element.

Whitespace between two interpolations is dropped, as is whitespace after a
closing ``}`` or ``)``.
"""

from __future__ import annotations

import io
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Union

__all__ = ["TemplateError", "Display", "Call", "Repeat", "parse", "render"]


class TemplateError(ValueError):
    """Raised for a malformed pattern or a value missing at render time."""


@dataclass(frozen=True)
class Display:
    """Interpolation of a value formatted with ``str``."""

    name: str


@dataclass(frozen=True)
class Call:
    """Interpolation of a callable invoked with the output stream."""

    name: str


@dataclass(frozen=True)
class Repeat:
    """A repeated body, iterated over the zipped values of ``names``."""

    body: tuple
    names: tuple


Node = Union[str, Display, Call, Repeat]


def _id_start(c: str) -> bool:
    return c == "_" or c.isidentifier()


def _id_continue(c: str) -> bool:
    return ("a" + c).isidentifier()


class _Scanner:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def peek(self) -> Optional[str]:
        return self.text[self.pos] if self.pos < len(self.text) else None

    def at(self, pred: Callable[[str], bool]) -> bool:
        c = self.peek()
        return c is not None and pred(c)

    def eat_if(self, s: str) -> bool:
        if self.text.startswith(s, self.pos):
            self.pos += len(s)
            return True
        return False

    def eat_while(self, pred: Callable[[str], bool]) -> str:
        start = self.pos
        while self.at(pred):
            self.pos += 1
        return self.text[start:self.pos]

    def eat_until(self, ch: str) -> str:
        return self.eat_while(lambda c: c != ch)

    def eat_whitespace(self) -> str:
        return self.eat_while(str.isspace)

    def rest(self) -> str:
        rest = self.text[self.pos:]
        self.pos = len(self.text)
        return rest

    def expect(self, s: str) -> None:
        if not self.eat_if(s):
            raise TemplateError(f"expected {s!r} at position {self.pos}")


def _parse_ident(scan: _Scanner) -> Optional[str]:
    if scan.at(_id_start):
        return scan.eat_while(_id_continue)
    if scan.eat_if("{"):
        scan.eat_whitespace()
        ident = scan.eat_while(_id_continue)
        scan.eat_whitespace()
        scan.expect("}")
        scan.eat_whitespace()
        if not ident:
            raise TemplateError("empty identifier in braces")
        return ident
    return None


def _parse_next(scan: _Scanner) -> tuple[str, Optional[Node]]:
    raw = scan.eat_until("$")
    if not scan.eat_if("$"):
        return raw, None

    scan.eat_whitespace()
    ident = _parse_ident(scan)
    pattern: Node
    if ident is not None:
        pattern = Display(ident)
    elif scan.eat_if("!"):
        scan.eat_whitespace()
        ident = _parse_ident(scan)
        if ident is None:
            raise TemplateError(f"Unknown pattern $!{scan.rest()}")
        pattern = Call(ident)
    elif scan.eat_if("("):
        start = scan.pos
        depth = 0
        while (c := scan.peek()) is not None:
            if c == ")":
                if depth == 0:
                    break
                depth -= 1
            elif c == "(":
                depth += 1
            scan.pos += 1
        inner = scan.text[start:scan.pos]
        scan.expect(")")
        scan.eat_whitespace()
        pattern = _repeat(inner)
    else:
        raise TemplateError(f"Unknown pattern ${scan.rest()}")

    # Drop whitespace when another interpolation follows directly.
    start = scan.pos
    scan.eat_whitespace()
    if scan.peek() != "$":
        scan.pos = start
    return raw, pattern


def _repeat(inner: str) -> Repeat:
    body = _parse_nodes(inner)
    names: list[str] = []
    for node in body:
        if isinstance(node, Repeat):
            raise TemplateError("nested repetitions are not supported")
        if isinstance(node, (Display, Call)) and node.name not in names:
            names.append(node.name)
    if not names:
        raise TemplateError("repetition contains no interpolated variable")
    return Repeat(body, tuple(names))


def _parse_nodes(text: str) -> tuple:
    scan = _Scanner(text)
    nodes: list[Node] = []
    while True:
        raw, pattern = _parse_next(scan)
        if not raw and pattern is None:
            break
        if raw:
            nodes.append(raw)
        if pattern is not None:
            nodes.append(pattern)
    return tuple(nodes)


def parse(pattern: str) -> tuple:
    """Parse ``pattern`` into a tuple of text and interpolation nodes."""
    return _parse_nodes(pattern)


def _lookup(scope: Mapping[str, Any], name: str) -> Any:
    try:
        return scope[name]
    except KeyError:
        raise TemplateError(f"no value for {name!r}") from None


def _render(nodes: Sequence[Node], scope: Mapping[str, Any], out: io.StringIO) -> None:
    for node in nodes:
        if isinstance(node, str):
            out.write(node)
        elif isinstance(node, Display):
            out.write(str(_lookup(scope, node.name)))
        elif isinstance(node, Call):
            _lookup(scope, node.name)(out)
        else:
            iterables = [_lookup(scope, name) for name in node.names]
            for items in zip(*iterables):
                inner = {**scope, **dict(zip(node.names, items))}
                _render(node.body, inner, out)


def render(pattern: Union[str, Sequence[Node]], values: Mapping[str, Any]) -> str:
    """Render ``pattern`` (text or parsed nodes) with ``values`` and return the text."""
    nodes = parse(pattern) if isinstance(pattern, str) else pattern
    out = io.StringIO()
    _render(nodes, values, out)
    return out.getvalue()