"""
A small query-path language for picking values out of a built service.

    /                  the value itself
    /db/host           key lookup (attribute lookup on plain objects)
    /"log level"       quoted key
    /servers/0         index into a list
    /servers/*         every child
    //host             every ``host`` at any depth
    /servers/*[-1]     index filter applied to a step's matches
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from theutilitybelt.collections.queue import Queue

from .utils import EMPTY

_STEP_RE = re.compile(r'(?P<key>"(?:[^"\\]|\\.)*"|[^/\[\]"]*)(?:\[(?P<index>-?\d+)\])?')
_SCALARS = (str, bytes, int, float, bool)


class PathSyntaxError(ValueError):
    pass


@dataclass(frozen=True)
class Step:
    key: str | None = None
    index: int | None = None
    descend: bool = False

    @property
    def is_wildcard(self) -> bool:
        return self.key == "*"


def parse(path: str) -> list[Step]:
    if not isinstance(path, str) or not path.startswith("/"):
        raise PathSyntaxError(f"path must start with '/': {path!r}")

    steps: list[Step] = []
    position = 0
    while position < len(path):
        if path[position] != "/":
            raise PathSyntaxError(f"expected '/' at position {position} in {path!r}")
        position += 1
        if position < len(path) and path[position] == "/":
            steps.append(Step(descend=True))
            position += 1

        match = _STEP_RE.match(path, position)
        key = match.group("key") if match else ""
        index = match.group("index") if match else None
        if not key:
            if index is not None or position < len(path):
                raise PathSyntaxError(f"empty step at position {position} in {path!r}")
            break
        if key.startswith('"'):
            key = re.sub(r"\\(.)", r"\1", key[1:-1])
        steps.append(Step(key=key, index=int(index) if index is not None else None))
        position = match.end()

    return steps


def _children(node: Any) -> Iterator[Any]:
    if isinstance(node, Mapping):
        yield from node.values()
    elif isinstance(node, (list, tuple)):
        yield from node
    elif hasattr(node, "__dict__") and not isinstance(node, type):
        yield from (value for name, value in vars(node).items() if not name.startswith("_"))


def _child(node: Any, key: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(key, EMPTY)
    if isinstance(node, (list, tuple)):
        if re.fullmatch(r"-?\d+", key) and -len(node) <= int(key) < len(node):
            return node[int(key)]
        return EMPTY
    if isinstance(node, _SCALARS) or node is None or key.startswith("_"):
        return EMPTY
    return getattr(node, key, EMPTY)


def _descendants(node: Any, opaque: Callable[[Any], bool] | None = None) -> list[Any]:
    found = []
    seen: set[int] = set()
    queue = Queue()
    queue.put(node)
    while not queue.is_empty():
        current = queue.get()
        if isinstance(current, _SCALARS) or current is None:
            found.append(current)
            continue
        if id(current) in seen:
            continue
        seen.add(id(current))
        found.append(current)
        if opaque is not None and opaque(current):
            continue
        for child in _children(current):
            queue.put(child)
    return found


def select(data: Any, path: str, opaque: Callable[[Any], bool] | None = None) -> list[Any]:
    """
    Every value in ``data`` matched by ``path``, in document order for each step.
    ``//`` visits each object once and does not look inside nodes for which ``opaque`` is true.
    """
    matches = [data]
    for step in parse(path):
        if step.descend:
            matches = [found for node in matches for found in _descendants(node, opaque)]
            continue
        if step.is_wildcard:
            matches = [child for node in matches for child in _children(node)]
        else:
            matches = [child for node in matches if (child := _child(node, step.key)) is not EMPTY]  # type: ignore
        if step.index is not None:
            if -len(matches) <= step.index < len(matches):
                matches = [matches[step.index]]
            else:
                matches = []
    return matches
