# src/chainlook/engine/join.py
"""Join reconciler: merges rows from several sources into one result set.

The join map pairs qualified fields, ``{"pools.token": "prices.token"}``.
From it a JoinIndex records, for every source named on either side, its own
qualified join fields and their counterparts. Sources are then reconciled in
declaration order; each incoming row is merged into the first accumulated
row matching on all of the source's join fields, or appended.

Row keys are not qualified. A qualified field ``S.f`` resolves to the row key
``prefix(S) + f``, where prefix(S) is the source's optional key prefix. The
reconciler remembers which sources contributed to each accumulated row, and
a row is only a candidate for ``S.f -> T.g`` when T has contributed to it.
Rows of unrelated sources never merge, whatever their keys hold.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence, Set
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, NamedTuple

from chainlook.contracts.errors import ConfigError
from chainlook.contracts.widget import Row
from chainlook.core.logging import get_logger

logger = get_logger(__name__)


class JoinKey(NamedTuple):
    """One equality an incoming row must satisfy against an accumulated row."""

    own: str
    other: str
    other_source: str


JoinKeys = Sequence[JoinKey]

# Strategy: place ``incoming`` into ``accumulated``; return the index it landed at.
# ``contributors[i]`` holds the source keys already merged into ``accumulated[i]``.
JoinStrategy = Callable[[list[Row], Sequence[Set[str]], Row, JoinKeys], int]


def split_qualified(qualified: str) -> tuple[str, str]:
    """Split ``sourceKey.fieldName`` on the first dot.

    Raises:
        ConfigError: If the field is not qualified.
    """
    source_key, sep, name = qualified.partition(".")
    if not sep or not source_key or not name:
        raise ConfigError(
            f"Join field '{qualified}' must be qualified as 'sourceKey.fieldName'"
        )
    return source_key, name


@dataclass(frozen=True)
class JoinIndex:
    """Per-source lookup of join fields, built once and never mutated.

    Attributes:
        pairs: source_key -> {own qualified field -> counterpart qualified field}
    """

    pairs: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    @classmethod
    def from_join_map(cls, join: Mapping[str, str]) -> "JoinIndex":
        """Build the index, recording each pair in both directions."""
        pairs: dict[str, dict[str, str]] = {}
        for left, right in join.items():
            left_source, _ = split_qualified(left)
            right_source, _ = split_qualified(right)
            pairs.setdefault(left_source, {})[left] = right
            pairs.setdefault(right_source, {})[right] = left

        return cls(
            pairs=MappingProxyType(
                {source: MappingProxyType(fields) for source, fields in pairs.items()}
            )
        )

    @property
    def sources(self) -> frozenset[str]:
        return frozenset(self.pairs)

    def joins_for(self, source_key: str) -> Mapping[str, str]:
        """Own qualified join field -> counterpart, for one source."""
        return self.pairs.get(source_key, MappingProxyType({}))

    def fields_for(self, source_key: str) -> set[str]:
        """Unqualified names of the join fields a source must provide."""
        return {split_qualified(own)[1] for own in self.joins_for(source_key)}


def _has_value(value: Any) -> bool:
    """Absent, None and "" never match; 0 and False do."""
    return value is not None and not (isinstance(value, str) and value == "")


def _matches(candidate: Row, sources: Set[str], incoming: Row, keys: JoinKeys) -> bool:
    return all(
        key.other_source in sources
        and _has_value(incoming.get(key.own))
        and _has_value(candidate.get(key.other))
        and incoming[key.own] == candidate[key.other]
        for key in keys
    )


def first_match_merge(
    accumulated: list[Row],
    contributors: Sequence[Set[str]],
    incoming: Row,
    keys: JoinKeys,
) -> int:
    """Greedy first-match merge.

    Merges ``incoming`` in place into the first accumulated row where every
    join key's counterpart source has contributed, both sides hold a value
    and the values are equal; incoming fields overwrite. Without join keys,
    or without a match, appends.

    Ambiguous matches are not detected: only the first matching row is used.
    """
    if keys:
        for index, candidate in enumerate(accumulated):
            if _matches(candidate, contributors[index], incoming, keys):
                candidate.update(incoming)
                return index

    accumulated.append(incoming)
    return len(accumulated) - 1


class Reconciler:
    """Accumulates rows source by source using a join strategy.

    Example:
        reconciler = Reconciler(JoinIndex.from_join_map({"X.id": "Y.id"}))
        reconciler.add("X", rows_from_x)
        reconciler.add("Y", rows_from_y)
        result = reconciler.rows
    """

    def __init__(
        self,
        join_index: JoinIndex,
        *,
        prefixes: Mapping[str, str] | None = None,
        strategy: JoinStrategy = first_match_merge,
    ) -> None:
        self._join_index = join_index
        self._prefixes = dict(prefixes or {})
        self._strategy = strategy
        self._rows: list[Row] = []
        self._contributors: list[set[str]] = []
        self.merged_count = 0
        self.appended_count = 0

    @property
    def rows(self) -> list[Row]:
        return self._rows

    def contributors(self, index: int) -> frozenset[str]:
        """Source keys merged into the accumulated row at ``index``."""
        return frozenset(self._contributors[index])

    def row_key(self, qualified: str) -> str:
        """Row key a qualified field resolves to."""
        source_key, name = split_qualified(qualified)
        return f"{self._prefixes.get(source_key, '')}{name}"

    def keys_for(self, source_key: str) -> list[JoinKey]:
        return [
            JoinKey(self.row_key(own), self.row_key(other), split_qualified(other)[0])
            for own, other in self._join_index.joins_for(source_key).items()
        ]

    def add(self, source_key: str, rows: Iterable[Row]) -> None:
        """Reconcile one source's rows into the accumulated result."""
        keys = self.keys_for(source_key)
        for row in rows:
            index = self._strategy(self._rows, self._contributors, row, keys)
            if index == len(self._contributors):
                self._contributors.append({source_key})
                self.appended_count += 1
            else:
                self._contributors[index].add(source_key)
                self.merged_count += 1


def reconcile(
    sources: Iterable[tuple[str, list[Row]]],
    join_index: JoinIndex,
    *,
    prefixes: Mapping[str, str] | None = None,
    strategy: JoinStrategy = first_match_merge,
) -> list[Row]:
    """Reconcile ``(source_key, rows)`` pairs in the order given."""
    reconciler = Reconciler(join_index, prefixes=prefixes, strategy=strategy)
    for source_key, rows in sources:
        reconciler.add(source_key, rows)

    logger.debug(
        "join_reconciled",
        rows=len(reconciler.rows),
        merged=reconciler.merged_count,
        appended=reconciler.appended_count,
    )
    return reconciler.rows
