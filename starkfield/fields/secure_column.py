"""Secure field columns stored as four base field coordinate columns."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .m31 import M31
from .qm31 import SECURE_EXTENSION_DEGREE, QM31

__all__ = ["SECURE_EXTENSION_DEGREE", "SecureColumnByCoords"]


class SecureColumnByCoords:
    """A column of secure field elements kept as one column per coordinate."""

    __slots__ = ("columns",)

    def __init__(self, columns: Iterable[Iterable[M31]]) -> None:
        cols = [list(column) for column in columns]
        if len(cols) != SECURE_EXTENSION_DEGREE:
            raise ValueError(f"expected {SECURE_EXTENSION_DEGREE} coordinate columns")
        if len({len(column) for column in cols}) > 1:
            raise ValueError("coordinate columns differ in length")
        self.columns = cols

    @classmethod
    def zeros(cls, length: int) -> SecureColumnByCoords:
        return cls([M31.zero()] * length for _ in range(SECURE_EXTENSION_DEGREE))

    @classmethod
    def from_values(cls, values: Iterable[QM31]) -> SecureColumnByCoords:
        columns: list[list[M31]] = [[] for _ in range(SECURE_EXTENSION_DEGREE)]
        for value in values:
            for column, coord in zip(columns, value.to_m31_array()):
                column.append(coord)
        return cls(columns)

    def at(self, index: int) -> QM31:
        return QM31.from_m31_array([column[index] for column in self.columns])

    def set(self, index: int, value: QM31) -> None:
        for column, coord in zip(self.columns, value.to_m31_array()):
            column[index] = coord

    def to_list(self) -> list[QM31]:
        return list(self)

    def __len__(self) -> int:
        return len(self.columns[0])

    def __iter__(self) -> Iterator[QM31]:
        for coords in zip(*self.columns):
            yield QM31.from_m31_array(coords)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecureColumnByCoords):
            return NotImplemented
        return self.columns == other.columns

    def __repr__(self) -> str:
        return f"SecureColumnByCoords({self.to_list()!r})"