"""Splay tree keyed by integers, holding arbitrary records."""

from __future__ import annotations

from typing import Any, Callable, Iterator


class _Node:
    __slots__ = ("key", "record", "left", "right", "parent")

    def __init__(self, key: int, record: Any, parent: _Node | None) -> None:
        self.key = key
        self.record = record
        self.left: _Node | None = None
        self.right: _Node | None = None
        self.parent = parent


class SplayTree:
    """Self-adjusting binary search tree that counts key comparisons."""

    def __init__(self) -> None:
        self._root: _Node | None = None
        self.node_count = 0
        self.comparison_count = 0

    def __len__(self) -> int:
        return self.node_count

    def insert(self, key: int, record: Any) -> bool:
        """Insert ``key``; return False if it is already present."""
        z = self._root
        parent = None
        while z is not None:
            parent = z
            self.comparison_count += 1
            if key == z.key:
                return False
            self.comparison_count += 1
            z = z.right if key > z.key else z.left
        node = _Node(key, record, parent)
        if parent is None:
            self._root = node
        elif parent.key < key:
            parent.right = node
        else:
            parent.left = node
        self._splay(node)
        self.node_count += 1
        return True

    def find(self, key: int) -> Any:
        """Return the record stored under ``key``, or None."""
        z = self._root
        while z is not None:
            self.comparison_count += 1
            if key == z.key:
                return z.record
            self.comparison_count += 1
            z = z.right if key > z.key else z.left
        return None

    def find_nearest(self, key: int) -> Any:
        """Return the record with the largest key not above ``key``, or None."""
        z = self._root
        best = None
        while z is not None:
            self.comparison_count += 1
            if key == z.key:
                return z.record
            self.comparison_count += 1
            if key > z.key:
                if best is None or best.key < z.key:
                    best = z
                z = z.right
            else:
                z = z.left
        return best.record if best is not None else None

    def remove(self, key: int) -> Any:
        """Remove ``key`` and return its record, or None if absent."""
        z = self._root
        while z is not None and z.key != key:
            self.comparison_count += 1
            z = z.right if key > z.key else z.left
        if z is None:
            return None
        self._splay(z)
        if z.left is None:
            self._replace(z, z.right)
        elif z.right is None:
            self._replace(z, z.left)
        else:
            y = z.right
            while y.left is not None:
                y = y.left
            if y.parent is not z:
                self._replace(y, y.right)
                y.right = z.right
                y.right.parent = y
            self._replace(z, y)
            y.left = z.left
            y.left.parent = y
        self.node_count -= 1
        return z.record

    def clear(self, free_fun: Callable[[Any], None] | None = None) -> None:
        """Drop every node, passing each record to ``free_fun`` if given."""
        stack: list[tuple[_Node, bool]] = []
        if self._root is not None:
            stack.append((self._root, False))
        while stack:
            node, expanded = stack.pop()
            if expanded:
                if free_fun is not None:
                    free_fun(node.record)
                continue
            stack.append((node, True))
            if node.right is not None:
                stack.append((node.right, False))
            if node.left is not None:
                stack.append((node.left, False))
        self._root = None
        self.node_count = 0

    def keys(self) -> list[int]:
        """Keys in ascending order."""
        return list(self._in_order())

    def render(self, tree_mode: bool = False) -> str:
        """Text listing of the keys and the tree's counters."""
        body = "".join(self._tokens(tree_mode))
        return (
            f"[{body}] {self.node_count} nodes, "
            f"{self.comparison_count} comparisons"
        )

    def show(self, tree_mode: bool = False) -> None:
        """Print :meth:`render` to standard output."""
        print(self.render(tree_mode))

    def _in_order(self) -> Iterator[int]:
        stack: list[_Node] = []
        node = self._root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.key
            node = node.right

    def _tokens(self, tree_mode: bool) -> Iterator[str]:
        stack: list[Any] = [self._root]
        while stack:
            item = stack.pop()
            if item is None:
                continue
            if isinstance(item, str):
                yield item
                continue
            if tree_mode:
                stack.append(")")
            stack.append(item.right)
            stack.append(f" {item.key} ")
            stack.append(item.left)
            if tree_mode:
                stack.append("(")

    def _left_rotate(self, x: _Node) -> None:
        y = x.right
        if y is not None:
            x.right = y.left
            if y.left is not None:
                y.left.parent = x
            y.parent = x.parent
        if x.parent is None:
            self._root = y
        elif x is x.parent.left:
            x.parent.left = y
        else:
            x.parent.right = y
        if y is not None:
            y.left = x
        x.parent = y

    def _right_rotate(self, x: _Node) -> None:
        y = x.left
        if y is not None:
            x.left = y.right
            if y.right is not None:
                y.right.parent = x
            y.parent = x.parent
        if x.parent is None:
            self._root = y
        elif x is x.parent.left:
            x.parent.left = y
        else:
            x.parent.right = y
        if y is not None:
            y.right = x
        x.parent = y

    def _splay(self, x: _Node) -> None:
        while x.parent is not None:
            parent = x.parent
            grand = parent.parent
            if grand is None:
                if parent.left is x:
                    self._right_rotate(parent)
                else:
                    self._left_rotate(parent)
            elif parent.left is x and grand.left is parent:
                self._right_rotate(grand)
                self._right_rotate(x.parent)
            elif parent.right is x and grand.right is parent:
                self._left_rotate(grand)
                self._left_rotate(x.parent)
            elif parent.left is x and grand.right is parent:
                self._right_rotate(parent)
                self._left_rotate(x.parent)
            else:
                self._left_rotate(parent)
                self._right_rotate(x.parent)

    def _replace(self, u: _Node, v: _Node | None) -> None:
        if u.parent is None:
            self._root = v
        elif u is u.parent.left:
            u.parent.left = v
        else:
            u.parent.right = v
        if v is not None:
            v.parent = u.parent