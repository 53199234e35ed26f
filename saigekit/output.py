"""Tab-separated result files for single-variant and burden tests."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, TextIO

import numpy as np

NA = "NA"
ULTRA_RARE = "UR"
_TRAIT_TYPES = ("binary", "quantitative")
_NAN = math.nan


def _check_trait(trait_type: str) -> None:
    if trait_type not in _TRAIT_TYPES:
        raise ValueError(f"unknown trait type: {trait_type!r}")


def format_number(value: object) -> str:
    """Render a value as the result files show it.

    Booleans become ``true``/``false``, integers are written in full, other
    numbers use six significant digits (``%g``), strings pass through and
    ``None`` is written as ``NA``.
    """
    if value is None:
        return NA
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        return f"{float(value):g}"
    raise TypeError(f"cannot format value of type {type(value).__name__}")


@dataclass
class SingleVariantResult:
    """Association results of one variant; ``pvalue`` is ``NA`` when it was not tested."""

    chrom: str
    pos: str
    marker: str
    ref: str
    alt: str
    alt_counts: float = _NAN
    alt_freq: float = _NAN
    impute_info: float = 1.0
    missing_rate: float = 0.0
    beta: float = _NAN
    se_beta: float = _NAN
    tstat: float = _NAN
    var_t: float = _NAN
    pvalue: str = NA
    pvalue_na: str = NA
    is_spa_converge: bool = False
    beta_c: float = _NAN
    se_beta_c: float = _NAN
    tstat_c: float = _NAN
    var_t_c: float = _NAN
    pvalue_c: str = NA
    pvalue_na_c: str = NA
    af_case: float = _NAN
    af_ctrl: float = _NAN
    n_case: int = 0
    n_ctrl: int = 0
    n_case_hom: float = _NAN
    n_case_het: float = _NAN
    n_ctrl_hom: float = _NAN
    n_ctrl_het: float = _NAN
    n: int = 0

    @property
    def tested(self) -> bool:
        return self.pvalue != NA

    @property
    def is_ultra_rare(self) -> bool:
        return self.chrom == ULTRA_RARE


@dataclass
class BurdenResult:
    """Burden-test result of one annotation/MAF-cutoff group."""

    annotation: str
    max_maf: str
    pvalue: str = NA
    beta: float = _NAN
    se_beta: float = _NAN
    pvalue_c: str = NA
    beta_c: float = _NAN
    se_beta_c: float = _NAN
    mac: float = 0.0
    mac_case: float = 0.0
    mac_control: float = 0.0
    num_rare: float = 0.0
    num_ultra_rare: float = 0.0

    @property
    def tested(self) -> bool:
        return self.pvalue != NA


def single_header(
    trait_type: str,
    is_imputation: bool = False,
    is_condition: bool = False,
    more_output: bool = False,
) -> str:
    """Header line (newline-terminated) of a single-variant result file."""
    _check_trait(trait_type)
    binary = trait_type == "binary"
    columns = ["CHR", "POS", "MarkerID", "Allele1", "Allele2", "AC_Allele2", "AF_Allele2"]
    columns.append("imputationInfo" if is_imputation else "MissingRate")
    columns += ["BETA", "SE", "Tstat", "var", "p.value"]
    if binary:
        columns += ["p.value.NA", "Is.SPA"]
    if is_condition:
        columns += ["BETA_c", "SE_c", "Tstat_c", "var_c", "p.value_c"]
        if binary:
            columns.append("p.value.NA_c")
    if binary:
        columns += ["AF_case", "AF_ctrl", "N_case", "N_ctrl"]
        if more_output:
            columns += ["N_case_hom", "N_case_het", "N_ctrl_hom", "N_ctrl_het"]
    else:
        columns.append("N")
    return "\t".join(columns) + "\n"


def format_single_row(
    result: SingleVariantResult,
    trait_type: str,
    is_imputation: bool = False,
    is_condition: bool = False,
    more_output: bool = False,
) -> str:
    """One newline-terminated row of a single-variant result file."""
    _check_trait(trait_type)
    binary = trait_type == "binary"
    r = result
    values: list[object] = [r.chrom, r.pos, r.marker, r.ref, r.alt, r.alt_counts, r.alt_freq]
    values.append(r.impute_info if is_imputation else r.missing_rate)
    values += [r.beta, r.se_beta, r.tstat, r.var_t, r.pvalue]
    if binary:
        values += [r.pvalue_na, bool(r.is_spa_converge)]
    if is_condition:
        values += [r.beta_c, r.se_beta_c, r.tstat_c, r.var_t_c, r.pvalue_c]
        if binary:
            values.append(r.pvalue_na_c)
    if binary:
        values += [r.af_case, r.af_ctrl, r.n_case, r.n_ctrl]
        if more_output:
            values += [r.n_case_hom, r.n_case_het, r.n_ctrl_hom, r.n_ctrl_het]
    else:
        values.append(r.n)
    return "\t".join(format_number(v) for v in values) + "\n"


def write_single_results(
    stream: TextIO,
    results: Iterable[SingleVariantResult],
    trait_type: str,
    is_imputation: bool = False,
    is_condition: bool = False,
    more_output: bool = False,
) -> tuple[int, int]:
    """Write the tested variants; return ``(rows written, ultra-rare rows written)``."""
    _check_trait(trait_type)
    written = 0
    ultra_rare = 0
    for result in results:
        if not result.tested:
            continue
        stream.write(
            format_single_row(result, trait_type, is_imputation, is_condition, more_output)
        )
        written += 1
        if result.is_ultra_rare:
            ultra_rare += 1
    return written, ultra_rare


def burden_header(trait_type: str, is_condition: bool = False) -> str:
    """Header line (newline-terminated) of a burden-test result file."""
    _check_trait(trait_type)
    columns = ["Region", "Group", "max_MAF", "Pvalue_Burden", "BETA_Burden", "SE_Burden"]
    if is_condition:
        columns += ["Pvalue_Burden_c", "Beta_Burden_c", "seBeta_Burden_c"]
    columns.append("MAC")
    if trait_type == "binary":
        columns += ["MAC_case", "MAC_control"]
    columns += ["Number_rare", "Number_ultra_rare"]
    return "\t".join(columns) + "\n"


def write_burden_results(
    stream: TextIO,
    region_name: str,
    results: Iterable[BurdenResult],
    cct_pvalue: float,
    cct_pvalue_cond: Optional[float] = None,
    is_condition: bool = False,
    trait_type: str = "quantitative",
) -> int:
    """Write the tested groups of a region followed by its Cauchy-combined row.

    Returns the number of group rows written, not counting the Cauchy row.
    """
    _check_trait(trait_type)
    if is_condition and cct_pvalue_cond is None:
        raise ValueError("a conditional Cauchy p-value is required when conditioning")
    binary = trait_type == "binary"
    written = 0
    for res in results:
        if not res.tested:
            continue
        values: list[object] = [
            region_name, res.annotation, res.max_maf, res.pvalue, res.beta, res.se_beta,
        ]
        if is_condition:
            values += [res.pvalue_c, res.beta_c, res.se_beta_c]
        values.append(res.mac)
        if binary:
            values += [res.mac_case, res.mac_control]
        values += [res.num_rare, res.num_ultra_rare]
        stream.write("\t".join(format_number(v) for v in values) + "\n")
        written += 1

    summary: list[object] = [region_name, "Cauchy", NA, cct_pvalue, NA, NA]
    if is_condition:
        summary += [cct_pvalue_cond, NA, NA]
    summary.append(NA)
    if binary:
        summary += [NA, NA]
    summary += [NA, NA]
    stream.write("\t".join(format_number(v) for v in summary) + "\n")
    return written


def append_file(source: str | Path, stream: TextIO) -> int:
    """Copy every line of ``source`` to ``stream``; return the number of lines copied."""
    count = 0
    with open(source, encoding="utf-8") as handle:
        for line in handle:
            stream.write(line.rstrip("\n") + "\n")
            count += 1
    return count