"""Reading genotypes from SNP-major PLINK binary filesets (.bed/.bim/.fam)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterable, Sequence

import numpy as np

_BED_MAGIC_MODE = 1
_HEADER_SIZE = 3
_FIELD_SEPARATOR = re.compile(r"[\t ]")

# Two-bit codes in a .bed file.
HOM_ALT = 0x0  # homozygous for allele 1 in the .bim file
MISSING = 0x1
HET = 0x2
HOM_REF = 0x3  # homozygous for allele 2 in the .bim file

# Dosage lookups indexed by the two-bit code; -1 marks a missing call.
_DOSAGE_ALT_FIRST = np.array([2, -1, 1, 0], dtype=float)
_DOSAGE_REF_FIRST = np.array([0, -1, 1, 2], dtype=float)


class PlinkError(Exception):
    """Raised when a PLINK fileset is malformed or a request cannot be met."""


class AlleleOrder(str, Enum):
    """Which .bim allele is treated as the ALT allele."""

    ALT_FIRST = "alt-first"
    REF_FIRST = "ref-first"


@dataclass(frozen=True)
class BimRecord:
    """One variant line of a .bim file."""

    chrom: str
    marker_id: str
    genetic_distance: float
    position: int
    allele1: str
    allele2: str


@dataclass
class PlinkMarker:
    """Genotypes and summary statistics of one variant."""

    marker: str
    chrom: str
    position: int
    ref: str
    alt: str
    alt_freq: float
    alt_counts: float
    missing_rate: float
    impute_info: float
    genotypes: np.ndarray
    missing_indices: list[int] = field(default_factory=list)
    nonzero_indices: list[int] = field(default_factory=list)


def _split_fields(line: str) -> list[str]:
    return _FIELD_SEPARATOR.split(line)


def _read_lines(path: str | Path) -> list[str]:
    try:
        with open(path, encoding="utf-8") as handle:
            return [line.rstrip("\n") for line in handle]
    except OSError as err:
        raise PlinkError(f"cannot read {path}: {err}") from err


def read_bim(path: str | Path) -> list[BimRecord]:
    """Parse a .bim file; allele codes are upper-cased."""
    records = []
    for lineno, line in enumerate(_read_lines(path), start=1):
        fields = _split_fields(line)
        fields[-1] = fields[-1].replace("\r", "")
        try:
            records.append(
                BimRecord(
                    chrom=fields[0],
                    marker_id=fields[1],
                    genetic_distance=float(fields[2]),
                    position=int(fields[3]),
                    allele1=fields[4].upper(),
                    allele2=fields[5].upper(),
                )
            )
        except (IndexError, ValueError) as err:
            raise PlinkError(f"{path}:{lineno}: malformed bim line") from err
    return records


def read_fam(path: str | Path) -> list[str]:
    """Return the individual IDs (second column) of a .fam file."""
    sample_ids = []
    for lineno, line in enumerate(_read_lines(path), start=1):
        fields = _split_fields(line)
        if len(fields) < 2:
            raise PlinkError(f"{path}:{lineno}: malformed fam line")
        sample_ids.append(fields[1].replace("\r", ""))
    return sample_ids


class PlinkReader:
    """Random access to variants of a SNP-major PLINK fileset."""

    def __init__(
        self,
        bim_file: str | Path,
        fam_file: str | Path,
        bed_file: str | Path,
        allele_order: AlleleOrder | str = AlleleOrder.ALT_FIRST,
    ) -> None:
        try:
            self.allele_order = AlleleOrder(allele_order)
        except ValueError as err:
            raise PlinkError(f"unknown allele order: {allele_order!r}") from err
        self.markers = read_bim(bim_file)
        self.file_sample_ids = read_fam(fam_file)
        self.bytes_per_marker = (len(self.file_sample_ids) + 3) // 4
        self._fh: BinaryIO | None = None
        try:
            self._fh = open(bed_file, "rb")
        except OSError as err:
            raise PlinkError(f"cannot open {bed_file}: {err}") from err
        header = self._fh.read(_HEADER_SIZE)
        if len(header) < _HEADER_SIZE or header[2] != _BED_MAGIC_MODE:
            self.close()
            raise PlinkError(
                "the third magic number of the bed file is not 00000001; "
                "use SNP-major PLINK files"
            )
        self.set_samples(self.file_sample_ids)

    @property
    def n_markers(self) -> int:
        return len(self.markers)

    @property
    def n_samples_in_file(self) -> int:
        return len(self.file_sample_ids)

    @property
    def n_samples(self) -> int:
        return len(self._positions)

    @property
    def chromosomes(self) -> list[str]:
        return [record.chrom for record in self.markers]

    def set_samples(self, sample_ids: Iterable[str]) -> None:
        """Select and order the samples whose genotypes are returned."""
        lookup: dict[str, int] = {}
        for pos, sample in enumerate(self.file_sample_ids):
            lookup.setdefault(sample, pos)
        requested = list(sample_ids)
        missing = [sample for sample in requested if sample not in lookup]
        if missing:
            raise PlinkError(
                f"at least one requested subject is not in the PLINK file: {missing[0]}"
            )
        self.sample_ids = requested
        self._positions = np.array([lookup[s] for s in requested], dtype=np.int64)

    def read_marker(self, index: int, true_genotype: bool = True) -> PlinkMarker:
        """Read variant ``index``; with ``true_genotype`` false raw 2-bit codes are returned."""
        if self._fh is None:
            raise PlinkError("the bed file is closed")
        if not 0 <= index < self.n_markers:
            raise PlinkError(f"marker index {index} out of range")
        self._fh.seek(_HEADER_SIZE + self.bytes_per_marker * index)
        data = self._fh.read(self.bytes_per_marker)
        if len(data) < self.bytes_per_marker:
            raise PlinkError(f"bed file is truncated at marker {index}")

        packed = np.frombuffer(data, dtype=np.uint8)
        pos = self._positions
        codes = (packed[pos // 4] >> ((pos % 4) * 2).astype(np.uint8)) & 0x3

        missing_mask = codes == MISSING
        n_missing = int(missing_mask.sum())
        allele1_count = float(np.count_nonzero(codes == HET) + 2 * np.count_nonzero(codes == HOM_ALT))

        record = self.markers[index]
        if self.allele_order is AlleleOrder.ALT_FIRST:
            ref, alt, lookup = record.allele2, record.allele1, _DOSAGE_ALT_FIRST
        else:
            ref, alt, lookup = record.allele1, record.allele2, _DOSAGE_REF_FIRST

        if true_genotype:
            genotypes = lookup[codes]
            missing_indices = np.flatnonzero(missing_mask).tolist()
        else:
            genotypes = codes.astype(float)
            missing_indices = []
        nonzero_indices = np.flatnonzero(genotypes > 0).tolist()

        n = self.n_samples
        called = n - n_missing
        alt_counts = allele1_count
        alt_freq = alt_counts / called / 2 if called > 0 else 0.0
        if self.allele_order is AlleleOrder.REF_FIRST:
            alt_freq = 1 - alt_freq
            alt_counts = 2 * called * alt_freq

        return PlinkMarker(
            marker=record.marker_id,
            chrom=record.chrom,
            position=record.position,
            ref=ref,
            alt=alt,
            alt_freq=alt_freq,
            alt_counts=alt_counts,
            missing_rate=n_missing / n if n else 0.0,
            impute_info=1.0,
            genotypes=genotypes,
            missing_indices=missing_indices,
            nonzero_indices=nonzero_indices,
        )

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "PlinkReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def encode_dosages(dosages: Sequence[int | None]) -> bytes:
    """Pack ALT-first dosages (None for missing) into one .bed marker block."""
    code_of = {0: HOM_REF, 1: HET, 2: HOM_ALT, None: MISSING}
    out = bytearray((len(dosages) + 3) // 4)
    for i, dosage in enumerate(dosages):
        out[i // 4] |= code_of[dosage] << ((i % 4) * 2)
    return bytes(out)