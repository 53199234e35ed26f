"""Per-marker genotype helpers: X-chromosome dosage fixes, weights and case/control summaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np
from scipy.stats import beta as _beta_dist

# Dosage boundaries used to call genotype classes from (possibly imputed) dosages.
_HOM_LOWER = 1.5
_HOM_UPPER = 2.0
_HET_LOWER = 0.5


@dataclass(frozen=True)
class CaseControlSummary:
    """Allele frequencies and sample counts of one marker split by case status."""

    af_case: float
    af_ctrl: float
    n_case: int
    n_ctrl: int
    mac_case: float
    mac_ctrl: float
    n_case_hom: Optional[int] = None
    n_case_het: Optional[int] = None
    n_ctrl_hom: Optional[int] = None
    n_ctrl_het: Optional[int] = None


def double_male_non_par(
    genotypes: Sequence[float] | np.ndarray,
    position: int,
    par_regions: Iterable[Sequence[int]],
    male_indices: Sequence[int] | np.ndarray,
) -> np.ndarray:
    """Return the dosages with male entries doubled unless ``position`` lies in a PAR.

    ``par_regions`` holds inclusive ``(start, end)`` pairs of pseudo-autosomal regions.
    """
    result = np.array(genotypes, dtype=float, copy=True)
    in_par = any(int(start) <= position <= int(end) for start, end in par_regions)
    if not in_par:
        males = np.asarray(male_indices, dtype=np.int64)
        if males.size:
            if males.min() < 0 or males.max() >= result.size:
                raise IndexError("male sample index out of range")
            result[males] = result[males] * 2
    return result


def beta_weight(maf: float, a: float = 1.0, b: float = 25.0) -> float:
    """Density of the Beta(a, b) distribution at ``maf``, used as a variant weight."""
    if not (a > 0 and b > 0):
        raise ValueError("beta parameters must be positive")
    if not 0.0 <= maf <= 1.0:
        raise ValueError(f"MAF {maf} is outside [0, 1]")
    return float(_beta_dist.pdf(maf, a, b))


def genotype_class_counts(dosages: Sequence[float] | np.ndarray) -> tuple[int, int]:
    """Count homozygous-ALT and heterozygous calls as ``(hom, het)``.

    A dosage in [1.5, 2] is homozygous, one in [0.5, 1.5) heterozygous.
    """
    values = np.asarray(dosages, dtype=float)
    hom = int(np.count_nonzero((values >= _HOM_LOWER) & (values <= _HOM_UPPER)))
    het = int(np.count_nonzero((values >= _HET_LOWER) & (values < _HOM_LOWER)))
    return hom, het


def _half_mean(values: np.ndarray) -> float:
    return float(values.mean()) / 2 if values.size else float("nan")


def case_control_summary(
    dosages: Sequence[float] | np.ndarray,
    case_indices: Sequence[int] | np.ndarray,
    ctrl_indices: Sequence[int] | np.ndarray,
    flip: bool = False,
    more_output: bool = False,
) -> CaseControlSummary:
    """Summarise a marker's dosages among cases and controls.

    When ``flip`` is set the dosages count the other allele, so the frequencies
    are reported as ``1 - AF`` and homozygous counts are taken from the other end.
    """
    values = np.asarray(dosages, dtype=float)
    case = values[np.asarray(case_indices, dtype=np.int64)]
    ctrl = values[np.asarray(ctrl_indices, dtype=np.int64)]

    af_case = _half_mean(case)
    af_ctrl = _half_mean(ctrl)
    if flip:
        af_case = 1 - af_case
        af_ctrl = 1 - af_ctrl
    n_case = int(case.size)
    n_ctrl = int(ctrl.size)

    extra: dict[str, int] = {}
    if more_output:
        case_hom, case_het = genotype_class_counts(case)
        ctrl_hom, ctrl_het = genotype_class_counts(ctrl)
        if flip:
            case_hom = n_case - case_het - case_hom
            ctrl_hom = n_ctrl - ctrl_het - ctrl_hom
        extra = {
            "n_case_hom": case_hom,
            "n_case_het": case_het,
            "n_ctrl_hom": ctrl_hom,
            "n_ctrl_het": ctrl_het,
        }

    return CaseControlSummary(
        af_case=af_case,
        af_ctrl=af_ctrl,
        n_case=n_case,
        n_ctrl=n_ctrl,
        mac_case=float(case.sum()),
        mac_ctrl=float(ctrl.sum()),
        **extra,
    )


def format_max_maf(value: float) -> str:
    """Render a MAF cutoff with six decimals and trailing zeros removed."""
    return f"{value:.6f}".rstrip("0")