import numpy as np
import pytest

from saigekit.plink import (
    AlleleOrder,
    BimRecord,
    PlinkError,
    PlinkMarker,
    PlinkReader,
    encode_dosages,
    read_bim,
    read_fam,
)

SAMPLES = ["s1", "s2", "s3", "s4", "s5"]
MARKER0 = [0, 1, 2, None, 2]
MARKER1 = [1, 1, 0, 0, None]
MAGIC = b"\x6c\x1b\x01"


def _write_fileset(tmp_path, markers=(MARKER0, MARKER1), magic=MAGIC):
    bim = tmp_path / "data.bim"
    fam = tmp_path / "data.fam"
    bed = tmp_path / "data.bed"
    bim.write_text("1\trs1\t0\t100\ta\tg\n1 rs2 0.5 200 C T\r\n")
    fam.write_text("".join(f"f{i} {s} 0 0 1 -9\n" for i, s in enumerate(SAMPLES)))
    bed.write_bytes(magic + b"".join(encode_dosages(m) for m in markers))
    return bim, fam, bed


def _expected(dosages):
    return [-1.0 if d is None else float(d) for d in dosages]


def test_read_bim_parses_and_uppercases(tmp_path):
    bim, _, _ = _write_fileset(tmp_path)
    records = read_bim(bim)
    assert records[0] == BimRecord("1", "rs1", 0.0, 100, "A", "G")
    assert records[1].allele2 == "T"
    assert records[1].genetic_distance == 0.5


def test_read_bim_malformed_raises(tmp_path):
    bad = tmp_path / "bad.bim"
    bad.write_text("1\trs1\tnotanumber\t100\tA\tG\n")
    with pytest.raises(PlinkError):
        read_bim(bad)


def test_read_fam_returns_iids(tmp_path):
    _, fam, _ = _write_fileset(tmp_path)
    assert read_fam(fam) == SAMPLES


def test_bad_magic_raises(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path, magic=b"\x6c\x1b\x00")
    with pytest.raises(PlinkError):
        PlinkReader(bim, fam, bed, "alt-first")


def test_unknown_allele_order_raises(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    with pytest.raises(PlinkError):
        PlinkReader(bim, fam, bed, "middle-first")


def test_alt_first_marker(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    with PlinkReader(bim, fam, bed, AlleleOrder.ALT_FIRST) as reader:
        assert reader.n_markers == 2
        assert reader.n_samples == len(SAMPLES)
        marker = reader.read_marker(0, True)
    assert isinstance(marker, PlinkMarker)
    assert marker.genotypes.tolist() == _expected(MARKER0)
    assert marker.ref == "G" and marker.alt == "A"
    assert marker.marker == "rs1" and marker.position == 100
    assert marker.missing_indices == [MARKER0.index(None)]
    assert marker.nonzero_indices == [i for i, d in enumerate(MARKER0) if d]
    called = [d for d in MARKER0 if d is not None]
    assert marker.alt_counts == sum(called)
    assert marker.alt_freq == pytest.approx(sum(called) / len(called) / 2)
    assert marker.missing_rate == pytest.approx(1 / len(MARKER0))
    assert marker.impute_info == 1.0


def test_ref_first_is_complement(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    with PlinkReader(bim, fam, bed, "alt-first") as alt_reader:
        alt = alt_reader.read_marker(1)
    with PlinkReader(bim, fam, bed, "ref-first") as ref_reader:
        ref = ref_reader.read_marker(1)
    assert ref.alt == alt.ref and ref.ref == alt.alt
    assert ref.alt_freq == pytest.approx(1 - alt.alt_freq)
    for a, r in zip(alt.genotypes, ref.genotypes):
        if a < 0:
            assert r == -1
        else:
            assert a + r == 2
    called = sum(d is not None for d in MARKER1)
    assert ref.alt_counts == pytest.approx(2 * called * ref.alt_freq)


def test_markers_read_out_of_order(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    with PlinkReader(bim, fam, bed, "alt-first") as reader:
        second = reader.read_marker(1)
        first = reader.read_marker(0)
    assert second.genotypes.tolist() == _expected(MARKER1)
    assert first.genotypes.tolist() == _expected(MARKER0)


def test_set_samples_reorders_and_subsets(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    with PlinkReader(bim, fam, bed, "alt-first") as reader:
        reader.set_samples(["s5", "s1", "s3"])
        marker = reader.read_marker(0)
    assert marker.genotypes.tolist() == _expected([MARKER0[4], MARKER0[0], MARKER0[2]])
    assert marker.missing_indices == []
    assert marker.missing_rate == 0.0


def test_set_samples_unknown_raises(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    with PlinkReader(bim, fam, bed, "alt-first") as reader:
        with pytest.raises(PlinkError):
            reader.set_samples(["s1", "nobody"])


def test_raw_codes(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    with PlinkReader(bim, fam, bed, "alt-first") as reader:
        marker = reader.read_marker(0, False)
    # .bed codes: 00 hom allele1, 01 missing, 10 het, 11 hom allele2
    assert marker.genotypes.tolist() == [3.0, 2.0, 0.0, 1.0, 0.0]
    assert marker.missing_indices == []
    assert np.all(marker.genotypes[marker.nonzero_indices] > 0)


def test_all_missing_alt_first_frequency_zero(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path, markers=([None] * 5, MARKER1))
    with PlinkReader(bim, fam, bed, "alt-first") as reader:
        marker = reader.read_marker(0)
    assert marker.alt_freq == 0
    assert marker.missing_rate == 1.0


def test_index_out_of_range_raises(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    with PlinkReader(bim, fam, bed, "alt-first") as reader:
        with pytest.raises(PlinkError):
            reader.read_marker(2)


def test_truncated_bed_raises(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path, markers=(MARKER0,))
    with PlinkReader(bim, fam, bed, "alt-first") as reader:
        with pytest.raises(PlinkError):
            reader.read_marker(1)


def test_read_after_close_raises(tmp_path):
    bim, fam, bed = _write_fileset(tmp_path)
    reader = PlinkReader(bim, fam, bed, "alt-first")
    with reader:
        pass
    with pytest.raises(PlinkError):
        reader.read_marker(0)


def test_encode_dosages_packs_low_bits_first():
    # 0 -> 11, 1 -> 10, 2 -> 00, missing -> 01 (first sample in lowest bits)
    assert encode_dosages([0, 1, 2, None]) == bytes([0b01001011])