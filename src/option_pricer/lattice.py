"""Triangular recombining lattice used by the binomial pricer.

Level ``n`` of a lattice of depth ``d`` holds ``n + 1`` nodes, ``0 <= n <= d``.
Node ``(n, i)`` is reached after ``i`` up moves and ``n - i`` down moves.
"""

from __future__ import annotations

from typing import Generic, TextIO, TypeVar
import copy
import sys

from .exceptions import LatticeIndexError, ValidationError

__all__ = ["Lattice"]

T = TypeVar("T")


class Lattice(Generic[T]):
    """Triangular array of values indexed by ``(level, position)``.

    Parameters
    ==========
    depth: int
        number of levels below the root (the lattice has ``depth + 1`` levels)
    default:
        value every node holds after construction or :meth:`set_depth`

    Notes
    -----
    Not synchronized; a lattice is owned by a single writer.
    """

    def __init__(self, depth: int = 0, default: T = 0.0) -> None:
        self._default = default
        self._depth = 0
        self._levels: list[list[T]] = []
        self.set_depth(depth)

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def default(self) -> T:
        return self._default

    def set_depth(self, depth: int) -> None:
        """Reallocate the lattice; every node is reset to the default value."""
        if depth < 0:
            raise ValidationError(f"Lattice: depth must be >= 0, got {depth}")
        self._depth = int(depth)
        self._levels = [
            [copy.copy(self._default) for _ in range(n + 1)] for n in range(self._depth + 1)
        ]

    def _check_indices(self, n: int, i: int) -> None:
        if n < 0 or n > self._depth:
            raise LatticeIndexError(f"Lattice: level {n} out of range [0, {self._depth}]")
        if i < 0 or i > n:
            raise LatticeIndexError(f"Lattice: position {i} out of range [0, {n}]")

    def set_node(self, n: int, i: int, value: T) -> None:
        self._check_indices(n, i)
        self._levels[n][i] = value

    def get_node(self, n: int, i: int) -> T:
        self._check_indices(n, i)
        return self._levels[n][i]

    def level(self, n: int) -> list[T]:
        """Copy of the nodes at level ``n``."""
        self._check_indices(n, 0)
        return list(self._levels[n])

    def __getitem__(self, key: tuple[int, int]) -> T:
        n, i = key
        return self.get_node(n, i)

    def __setitem__(self, key: tuple[int, int], value: T) -> None:
        n, i = key
        self.set_node(n, i, value)

    def __len__(self) -> int:
        return self._depth + 1

    def __repr__(self) -> str:
        return f"{type(self).__name__}(depth={self._depth}, default={self._default!r})"

    def _value_width(self) -> int:
        width = 1
        for level in self._levels:
            for value in level:
                width = max(width, len(str(value)))
        return width

    def render(self) -> str:
        """Render the lattice as a centered text triangle.

        Each level is indented by ``(depth - n) * gap // 2`` where ``gap`` is
        the widest stringified value plus two; consecutive levels are joined
        by a line of ``/ \\`` connectors.
        """
        gap = self._value_width() + 2
        lines: list[str] = []
        for n in range(self._depth + 1):
            indent = max((self._depth - n) * gap // 2, 0)
            row = [" " * indent]
            for i, value in enumerate(self._levels[n]):
                text = str(value)
                row.append(text)
                if i < n:
                    row.append(" " * max(gap - len(text), 1))
            lines.append("".join(row))

            if n < self._depth:
                connectors = (" " * (gap - 1)).join("/ \\" for _ in range(n + 1))
                lines.append(" " * max(indent - 1, 0) + connectors)
        return "\n".join(lines) + "\n"

    def display(self, file: TextIO | None = None) -> None:
        """Write :meth:`render` to ``file`` (stdout by default)."""
        (file or sys.stdout).write(self.render())

    def __str__(self) -> str:
        return self.render()
