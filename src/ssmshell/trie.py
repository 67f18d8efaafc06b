"""Prefix tree over slash-delimited SSM parameter paths."""

from __future__ import annotations

import heapq
from collections.abc import Iterator

from ssmshell.models import SEPARATOR, TrieNode


class PathTrie:
    """In-memory prefix tree used to answer completion queries.

    Each node is one path segment.  Splitting keeps empty segments, so the
    absolute path ``/app/db`` lives under a root child named ``""``; relative
    names such as ``legacy`` hang directly off the root.  Terminal nodes mark
    cached parameters; the parameter itself stays in the cache and is looked
    up by ``node.path``.
    """

    def __init__(self) -> None:
        self._root = TrieNode(name="", path="")
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        node = self._find(path)
        return node is not None and node.terminal

    def __iter__(self) -> Iterator[str]:
        return self.completions("")

    def insert(self, path: str) -> bool:
        """Insert *path*, creating intermediate nodes as needed.

        Returns *True* if a new terminal was created, *False* if *path* was
        already present.
        """
        current = self._root
        segments = path.split(SEPARATOR)

        for i, segment in enumerate(segments):
            if segment not in current.children:
                current.children[segment] = TrieNode(
                    name=segment,
                    path=SEPARATOR.join(segments[: i + 1]),
                )
            current = current.children[segment]

        if current.terminal:
            return False
        current.terminal = True
        self._size += 1
        return True

    def remove(self, path: str) -> bool:
        """Remove the terminal at *path* and prune ancestors left empty.

        The root is never pruned.  Returns *False* if *path* was not present.
        """
        trail: list[tuple[TrieNode, str]] = []
        current = self._root
        for segment in path.split(SEPARATOR):
            child = current.children.get(segment)
            if child is None:
                return False
            trail.append((current, segment))
            current = child

        if not current.terminal:
            return False
        current.terminal = False
        self._size -= 1

        node = current
        while trail and node.is_leaf and not node.terminal:
            parent, segment = trail.pop()
            del parent.children[segment]
            node = parent
        return True

    def completions(self, prefix: str) -> Iterator[str]:
        """Yield every stored path that starts with *prefix*, in lexicographic order.

        The result is a fresh generator on each call; an unknown prefix
        yields nothing.
        """
        *walk, partial = prefix.split(SEPARATOR)
        node: TrieNode | None = self._root
        for segment in walk:
            node = node.children.get(segment)
            if node is None:
                return

        matches = [child for name, child in node.children.items() if name.startswith(partial)]
        yield from heapq.merge(*(self._walk(child) for child in matches))

    def is_namespace(self, path: str) -> bool:
        """True when some stored path lies strictly below *path*."""
        # "/app/" is looked up as "/app", and "/" as the absolute-path root.
        node = self._find(path.rstrip(SEPARATOR)) if path else self._root
        return node is not None and not node.is_leaf

    def node_count(self) -> int:
        """Number of nodes below the root."""
        count = 0
        stack = list(self._root.children.values())
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.children.values())
        return count

    def _find(self, path: str) -> TrieNode | None:
        current = self._root
        for segment in path.split(SEPARATOR):
            child = current.children.get(segment)
            if child is None:
                return None
            current = child
        return current

    def _walk(self, node: TrieNode) -> Iterator[str]:
        # A node's own path sorts before every path beneath it, and
        # heapq.merge keeps sibling subtrees interleaved in string order.
        if node.terminal:
            yield node.path
        yield from heapq.merge(*(self._walk(child) for child in list(node.children.values())))
