"""
Shape value type and broadcast rules.

A `Shape` is an ordered tuple of non-negative extents. Besides the usual
tuple behavior it knows how to:

- compute a common *promoted* shape for several operands (`Shape.promote`),
- tell whether it can be broadcast to a larger shape (`can_promote_to`),
- compute the reduction axes that *collapse* a broadcast shape back to a
  narrower one (`collapse_axes`).

Broadcasting follows right-aligned rules: the narrower shape is left-padded
with ones, and every padded extent must either equal the target extent or be
one. Promotion repeats values along those axes; collapse sums over them.

Notes
-----
`Shape` subclasses `tuple`, so it compares equal to plain tuples and can be
used anywhere a NumPy shape is expected.
"""

from __future__ import annotations

from typing import Iterable, Tuple

from ._errors import ShapeMismatchError


class Shape(tuple):
    """
    Immutable tensor shape.

    Parameters
    ----------
    dims : Iterable[int], optional
        Extents of each axis. Defaults to the empty (scalar) shape.

    Raises
    ------
    ValueError
        If any extent is negative or not an integer.
    """

    def __new__(cls, dims: Iterable[int] = ()) -> "Shape":
        out = []
        for d in dims:
            if isinstance(d, bool) or int(d) != d:
                raise ValueError(f"Shape extents must be integers, got {d!r}")
            if d < 0:
                raise ValueError(f"Shape extents must be non-negative, got {d}")
            out.append(int(d))
        return super().__new__(cls, out)

    @classmethod
    def of(cls, *dims: int) -> "Shape":
        """Build a shape from positional extents, e.g. ``Shape.of(2, 3)``."""
        return cls(dims)

    @property
    def ndim(self) -> int:
        """Number of axes."""
        return len(self)

    @property
    def size(self) -> int:
        """Total number of elements."""
        n = 1
        for d in self:
            n *= d
        return n

    def can_promote_to(self, target: Iterable[int]) -> bool:
        """
        Check whether this shape broadcasts to `target`.

        Parameters
        ----------
        target : Iterable[int]
            Candidate (wider) shape.

        Returns
        -------
        bool
            True if every left-padded extent of this shape is 1 or equals the
            matching extent of `target`.
        """
        tgt = tuple(target)
        if len(self) > len(tgt):
            return False
        padded = (1,) * (len(tgt) - len(self)) + tuple(self)
        return all(s in (1, t) for s, t in zip(padded, tgt))

    def collapse_axes(self, target: Iterable[int]) -> Tuple[Tuple[int, ...], int]:
        """
        Compute the axes to sum over to reduce this shape to `target`.

        This is the inverse of promotion: `self` is the broadcast (wider)
        shape and `target` the original one.

        Parameters
        ----------
        target : Iterable[int]
            The pre-broadcast shape to collapse to.

        Returns
        -------
        reduce_axes : tuple[int, ...]
            Axes of `self` to sum with ``keepdims=True``.
        pad : int
            Number of leading axes `target` was padded with.

        Raises
        ------
        ShapeMismatchError
            If `target` could not have been promoted to this shape.
        """
        tgt = Shape(target)
        if not tgt.can_promote_to(self):
            raise ShapeMismatchError(
                "Cannot collapse shape to a shape it was not promoted from",
                expected=tgt,
                actual=self,
            )
        pad = len(self) - len(tgt)
        padded = (1,) * pad + tuple(tgt)
        reduce_axes = tuple(
            i for i, (s, t) in enumerate(zip(self, padded)) if t == 1 and s != 1
        )
        return reduce_axes, pad

    @staticmethod
    def promote(*shapes: Iterable[int]) -> "Shape":
        """
        Compute the common shape all `shapes` broadcast to.

        Raises
        ------
        ShapeMismatchError
            If two shapes disagree on a non-unit extent.
        """
        norm = [tuple(s) for s in shapes]
        if not norm:
            return Shape()
        rank = max(len(s) for s in norm)
        out = [1] * rank
        for s in norm:
            padded = (1,) * (rank - len(s)) + s
            for i, d in enumerate(padded):
                if d == 1:
                    continue
                if out[i] in (1, d):
                    out[i] = d
                else:
                    raise ShapeMismatchError(
                        "Operand shapes cannot be promoted to a common shape: "
                        + ", ".join(str(tuple(x)) for x in norm)
                    )
        return Shape(out)

    def __repr__(self) -> str:
        return "Shape(" + ", ".join(str(d) for d in self) + ")"
