"""Region-based accumulation: annotation/MAF groups and chunked variance matrices."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Optional, Sequence

import numpy as np

_P1_TEMPLATE = "{prefix}_P1Mat_Chunk_{index}.bin"
_P2_TEMPLATE = "{prefix}_P2Mat_Chunk_{index}.bin"

COMMON = 1
ULTRA_RARE = 2


class GroupAccumulator:
    """Collects per-group sums over the variants of one region.

    Groups are indexed ``j * len(max_maf) + m`` for annotation ``j`` and MAF
    cutoff ``m``. A variant enters every cutoff that is at least its MAF, for
    every annotation flagged with 1 in its annotation row. Set
    ``case_indices`` and ``ctrl_indices`` to also collect case and control
    allele counts.
    """

    def __init__(
        self,
        n_samples: int,
        n_anno: int,
        max_maf: Sequence[float],
        weight_customized: bool = False,
    ) -> None:
        if n_samples <= 0:
            raise ValueError("n_samples must be positive")
        if n_anno <= 0:
            raise ValueError("n_anno must be positive")
        self.max_maf = np.asarray(max_maf, dtype=float).reshape(-1)
        if self.max_maf.size == 0:
            raise ValueError("at least one maximum MAF cutoff is required")
        self.n_samples = int(n_samples)
        self.n_anno = int(n_anno)
        self.n_maf = int(self.max_maf.size)
        self.n_groups = self.n_anno * self.n_maf
        self.weight_customized = bool(weight_customized)

        self.geno_sum = np.zeros((self.n_samples, self.n_groups))
        self.geno_sum_count = np.zeros(self.n_groups)
        self.geno_ultra_rare = np.zeros((self.n_samples, self.n_groups))
        self.mac = np.zeros(self.n_groups)
        self.mac_case = np.zeros(self.n_groups)
        self.mac_ctrl = np.zeros(self.n_groups)
        self.num_rare = np.zeros(self.n_groups)
        self.num_ultra_rare = np.zeros(self.n_groups)
        self.max_maf_per_anno = np.zeros(self.n_anno)

        self.case_indices: Optional[np.ndarray] = None
        self.ctrl_indices: Optional[np.ndarray] = None

    def _genotypes(self, genotypes: Sequence[float] | np.ndarray) -> np.ndarray:
        values = np.asarray(genotypes, dtype=float).reshape(-1)
        if values.size != self.n_samples:
            raise ValueError(
                f"expected {self.n_samples} genotypes, got {values.size}"
            )
        return values

    def _groups_for(self, maf: float, anno_row: Sequence[float]) -> list[int]:
        row = np.asarray(anno_row).reshape(-1)
        if row.size != self.n_anno:
            raise ValueError(f"annotation row must have {self.n_anno} entries")
        maf_hits = np.flatnonzero(self.max_maf >= maf)
        groups = []
        for j in np.flatnonzero(row == 1):
            self.max_maf_per_anno[j] = max(self.max_maf_per_anno[j], maf)
            groups.extend(int(j) * self.n_maf + int(m) for m in maf_hits)
        return groups

    def _add_case_control(self, group: int, values: np.ndarray) -> None:
        if self.case_indices is not None:
            self.mac_case[group] += float(values[np.asarray(self.case_indices)].sum())
        if self.ctrl_indices is not None:
            self.mac_ctrl[group] += float(values[np.asarray(self.ctrl_indices)].sum())

    def add_common(
        self,
        genotypes: Sequence[float] | np.ndarray,
        maf: float,
        mac: float,
        weight: float,
        anno_row: Sequence[float],
    ) -> np.ndarray:
        """Add a variant above the ultra-rare cutoff; return its group indicator row."""
        values = self._genotypes(genotypes)
        nonzero = np.flatnonzero(values != 0)
        indicator = np.zeros(self.n_groups, dtype=int)
        for group in self._groups_for(maf, anno_row):
            indicator[group] = COMMON
            self.mac[group] += mac
            self._add_case_control(group, values)
            self.geno_sum[nonzero, group] += weight * values[nonzero]
            self.geno_sum_count[group] += float(values[nonzero].sum())
            self.num_rare[group] += 1
        return indicator

    def add_ultra_rare(
        self,
        genotypes: Sequence[float] | np.ndarray,
        maf: float,
        weight: float,
        anno_row: Sequence[float],
    ) -> np.ndarray:
        """Collapse an ultra-rare variant into its groups by per-sample maximum.

        ``weight`` scales the dosages only when weights are customised.
        Returns the group indicator row.
        """
        values = self._genotypes(genotypes)
        if self.weight_customized:
            values = values * weight
        nonzero = np.flatnonzero(values != 0)
        indicator = np.zeros(self.n_groups, dtype=int)
        for group in self._groups_for(maf, anno_row):
            indicator[group] = ULTRA_RARE
            column = self.geno_ultra_rare[:, group]
            column[nonzero] = np.maximum(column[nonzero], values[nonzero])
            self.num_ultra_rare[group] += 1
        return indicator

    def collapsed_ultra_rare(self) -> Iterator[tuple[int, np.ndarray]]:
        """Yield ``(group, genotypes)`` for each group holding ultra-rare carriers."""
        for group in range(self.n_groups):
            column = self.geno_ultra_rare[:, group]
            if np.any(column != 0):
                yield group, column.copy()

    def add_collapsed(
        self,
        group: int,
        genotypes: Sequence[float] | np.ndarray,
        weight: float,
        mac: float,
    ) -> None:
        """Fold a collapsed ultra-rare marker into the burden sums of ``group``."""
        if not 0 <= group < self.n_groups:
            raise IndexError(f"group {group} out of range")
        values = self._genotypes(genotypes)
        nonzero = np.flatnonzero(values != 0)
        self.geno_sum[nonzero, group] += values[nonzero] * weight
        self.geno_sum_count[group] += float(values[nonzero].sum())
        self.mac[group] += mac
        self._add_case_control(group, values)

    def max_maf_index_per_annotation(self) -> list[int]:
        """For each annotation, the smallest cutoff index covering its largest MAF."""
        indices = []
        for j, largest in enumerate(self.max_maf_per_anno):
            covering = np.flatnonzero(self.max_maf >= largest)
            if covering.size == 0:
                raise ValueError(
                    f"annotation {j} has MAF {largest} above every cutoff"
                )
            indices.append(int(covering.min()))
        return indices


class ChunkedVariance:
    """Builds a variance matrix ``P1 @ P2`` from chunks kept on disk."""

    def __init__(self, prefix: str | Path) -> None:
        self.prefix = str(prefix)
        self.sizes: list[int] = []
        self._n_samples: Optional[int] = None

    def _paths(self, index: int) -> tuple[str, str]:
        return (
            _P1_TEMPLATE.format(prefix=self.prefix, index=index),
            _P2_TEMPLATE.format(prefix=self.prefix, index=index),
        )

    def add_chunk(self, p1: np.ndarray, p2: np.ndarray) -> int:
        """Store one chunk (``p1`` is m x n, ``p2`` is n x m); return its index."""
        left = np.atleast_2d(np.asarray(p1, dtype=float))
        right = np.atleast_2d(np.asarray(p2, dtype=float))
        if left.shape[0] != right.shape[1] or left.shape[1] != right.shape[0]:
            raise ValueError(
                f"chunk shapes {left.shape} and {right.shape} do not match"
            )
        if self._n_samples is None:
            self._n_samples = left.shape[1]
        elif left.shape[1] != self._n_samples:
            raise ValueError("every chunk must cover the same samples")
        index = len(self.sizes)
        p1_path, p2_path = self._paths(index)
        with open(p1_path, "wb") as handle:
            np.save(handle, left)
        with open(p2_path, "wb") as handle:
            np.save(handle, right)
        self.sizes.append(left.shape[0])
        return index

    def _load(self, path: str) -> np.ndarray:
        with open(path, "rb") as handle:
            return np.load(handle)

    def assemble(self) -> np.ndarray:
        """Return the full symmetric variance matrix and remove the chunk files."""
        total = sum(self.sizes)
        variance = np.zeros((total, total))
        offsets = np.concatenate(([0], np.cumsum(self.sizes))).astype(int)
        try:
            for i, size_i in enumerate(self.sizes):
                if size_i == 0:
                    continue
                p1 = self._load(self._paths(i)[0])
                rows = slice(offsets[i], offsets[i + 1])
                for j in range(i):
                    if self.sizes[j] == 0:
                        continue
                    block = p1 @ self._load(self._paths(j)[1])
                    cols = slice(offsets[j], offsets[j + 1])
                    variance[rows, cols] = block
                    variance[cols, rows] = block.T
                variance[rows, rows] = p1 @ self._load(self._paths(i)[1])
        finally:
            self.cleanup()
        return variance

    def cleanup(self) -> None:
        """Delete every chunk file written so far."""
        for index in range(len(self.sizes)):
            for path in self._paths(index):
                try:
                    os.remove(path)
                except FileNotFoundError:
                    pass