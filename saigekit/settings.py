"""Analysis settings: quality-control thresholds, region options and output paths."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, Sequence

_LEADING_UINT = re.compile(r"\s*\+?(\d+)")

SINGLE_IN_GROUP_SUFFIX = ".singleAssoc.txt"
TEMP_SUFFIX = "_temp"


@dataclass(frozen=True)
class QcThresholds:
    """Marker-level quality-control cutoffs and test options."""

    impute_method: str = "mean"
    missing_rate_cutoff: float = 0.15
    min_maf: float = 0.0
    min_mac: float = 0.5
    min_info: float = 0.0
    dosage_zerod_cutoff: float = 0.2
    dosage_zerod_mac_cutoff: float = 10.0
    weights_beta: tuple[float, float] = (1.0, 25.0)
    mac_cutoff_for_er: float = 4.0

    def passes(self, missing_rate: float, maf: float, mac: float, info: float) -> bool:
        """Return True when a marker survives missing-rate, MAF, MAC and INFO filters."""
        return not (
            missing_rate > self.missing_rate_cutoff
            or maf < self.min_maf
            or mac < self.min_mac
            or info < self.min_info
        )


@dataclass(frozen=True)
class RegionSettings:
    """Options for region-based (gene) tests."""

    max_maf: tuple[float, ...] = field(default=(0.01,))
    max_markers: int = 100
    mac_cutoff_ultra_rare: float = 10.0
    min_group_mac_for_burden_only: float = 5.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_maf", tuple(float(v) for v in self.max_maf))
        if not self.max_maf:
            raise ValueError("at least one maximum MAF cutoff is required")
        if self.max_markers <= 0:
            raise ValueError("max_markers must be positive")

    def max_maf_limit(self) -> float:
        """The largest MAF cutoff; markers above it are left out of every group."""
        return max(self.max_maf)


@dataclass(frozen=True)
class OutputPaths:
    """Files written by an analysis run."""

    group: str
    single_in_group: str
    single_in_group_temp: str
    single: str

    @classmethod
    def from_prefix(cls, prefix: str) -> "OutputPaths":
        """Derive every output path from one prefix."""
        single_in_group = prefix + SINGLE_IN_GROUP_SUFFIX
        return cls(
            group=prefix,
            single_in_group=single_in_group,
            single_in_group_temp=single_in_group + TEMP_SUFFIX,
            single=prefix,
        )


def _parse_index(text: str) -> int:
    """Read the leading unsigned integer of ``text``; 0 when there is none."""
    match = _LEADING_UINT.match(text)
    return int(match.group(1)) if match else 0


def marker_index_pairs(
    geno_type: str,
    indices: Sequence[str],
    prev_indices: Sequence[str] | None = None,
) -> Iterator[tuple[int, int]]:
    """Yield ``(previous_index, index)`` for each marker to be read.

    The first marker always has previous index 0. For ``plink`` the previous
    index is the preceding entry of ``indices``; for ``bgen`` it is the
    preceding entry of ``prev_indices``; other formats use 0.
    """
    if geno_type == "bgen":
        if prev_indices is None:
            raise ValueError("bgen input needs the previous-index list")
        if len(prev_indices) < len(indices) - 1:
            raise ValueError("previous-index list is shorter than the index list")
    previous_source: Sequence[str] | None
    if geno_type == "bgen":
        previous_source = prev_indices
    elif geno_type == "plink":
        previous_source = indices
    else:
        previous_source = None

    for position, text in enumerate(indices):
        if position == 0 or previous_source is None:
            previous = 0
        else:
            previous = _parse_index(previous_source[position - 1])
        yield previous, _parse_index(text)