import math

import numpy as np
import pytest

from saigekit.genotype import (
    CaseControlSummary,
    beta_weight,
    case_control_summary,
    double_male_non_par,
    format_max_maf,
    genotype_class_counts,
)

PAR = [(60001, 2699520), (154931044, 155260560)]


def test_double_male_outside_par():
    geno = np.array([0.0, 1.0, 1.0, 0.5, 0.0])
    males = [1, 3]
    result = double_male_non_par(geno, 5_000_000, PAR, males)
    np.testing.assert_allclose(result[males], 2 * geno[males])
    np.testing.assert_allclose(result[[0, 2, 4]], geno[[0, 2, 4]])


def test_double_male_inside_par_unchanged():
    geno = np.array([0.0, 1.0, 1.0, 0.5])
    result = double_male_non_par(geno, 100000, PAR, [1, 3])
    np.testing.assert_array_equal(result, geno)


@pytest.mark.parametrize("position", [60001, 2699520, 154931044])
def test_par_bounds_inclusive(position):
    geno = np.array([1.0, 1.0])
    result = double_male_non_par(geno, position, PAR, [0])
    np.testing.assert_array_equal(result, geno)


def test_double_male_does_not_modify_input():
    geno = np.array([1.0, 1.0])
    double_male_non_par(geno, 10, [], [0])
    np.testing.assert_array_equal(geno, np.array([1.0, 1.0]))


def test_double_male_bad_index():
    with pytest.raises(IndexError):
        double_male_non_par([1.0], 10, [], [3])


def test_beta_weight_uniform():
    for maf in (0.0, 0.2, 0.7):
        assert beta_weight(maf, 1, 1) == pytest.approx(1.0)


def test_beta_weight_at_zero_equals_b():
    assert beta_weight(0.0, 1, 25) == pytest.approx(25.0)


def test_beta_weight_symmetry():
    assert beta_weight(0.1, 1, 25) == pytest.approx(beta_weight(0.9, 25, 1))


def test_beta_weight_decreasing_for_default():
    values = [beta_weight(m) for m in (0.001, 0.01, 0.05, 0.2)]
    assert values == sorted(values, reverse=True)


def test_beta_weight_integrates_to_one():
    grid = np.linspace(0, 1, 20001)
    dens = np.array([beta_weight(x, 2, 5) for x in grid])
    assert np.trapz(dens, grid) == pytest.approx(1.0, abs=1e-4)


@pytest.mark.parametrize("maf,a,b", [(-0.1, 1, 25), (1.1, 1, 25), (0.1, 0, 25), (0.1, 1, -1)])
def test_beta_weight_domain(maf, a, b):
    with pytest.raises(ValueError):
        beta_weight(maf, a, b)


def test_genotype_class_counts_boundaries():
    hom, het = genotype_class_counts([0.0, 0.49, 0.5, 1.49, 1.5, 2.0, 2.1])
    assert (hom, het) == (2, 2)


def test_genotype_class_counts_bounded():
    values = np.random.default_rng(1).uniform(0, 2, 200)
    hom, het = genotype_class_counts(values)
    assert hom + het <= values.size
    assert hom == np.count_nonzero(values >= 1.5)


def test_case_control_summary_basic():
    dosages = [0, 1, 2, 0, 0, 1]
    summary = case_control_summary(dosages, [0, 1, 2], [3, 4, 5])
    assert isinstance(summary, CaseControlSummary)
    assert summary.af_case == pytest.approx(np.mean([0, 1, 2]) / 2)
    assert summary.af_ctrl == pytest.approx(np.mean([0, 0, 1]) / 2)
    assert (summary.n_case, summary.n_ctrl) == (3, 3)
    assert summary.mac_case == pytest.approx(3.0)
    assert summary.n_case_hom is None


def test_case_control_summary_flip_complements():
    dosages = [0, 1, 2, 0, 0, 1]
    plain = case_control_summary(dosages, [0, 1, 2], [3, 4, 5], more_output=True)
    flipped = case_control_summary(dosages, [0, 1, 2], [3, 4, 5], flip=True, more_output=True)
    assert flipped.af_case == pytest.approx(1 - plain.af_case)
    assert flipped.af_ctrl == pytest.approx(1 - plain.af_ctrl)
    assert flipped.n_case_het == plain.n_case_het
    assert flipped.n_case_hom == plain.n_case - plain.n_case_het - plain.n_case_hom
    assert flipped.n_ctrl_hom == plain.n_ctrl - plain.n_ctrl_het - plain.n_ctrl_hom


def test_case_control_summary_more_output_counts():
    dosages = [2, 1, 0, 2, 1]
    summary = case_control_summary(dosages, [0, 1, 2], [3, 4], more_output=True)
    assert summary.n_case_hom == genotype_class_counts([2, 1, 0])[0]
    assert summary.n_ctrl_het == genotype_class_counts([2, 1])[1]


def test_case_control_summary_empty_group_is_nan():
    summary = case_control_summary([1.0, 2.0], [], [0, 1])
    assert math.isnan(summary.af_case)
    assert summary.n_case == 0


def test_format_max_maf_strips_zeros():
    assert format_max_maf(0.01) == "0.01"
    assert format_max_maf(0.5) == "0.5"


def test_format_max_maf_keeps_point_for_whole_numbers():
    assert format_max_maf(1.0) == "1."


def test_format_max_maf_round_trip():
    for value in (0.0001, 0.001, 0.05, 0.25):
        assert float(format_max_maf(value)) == pytest.approx(value)