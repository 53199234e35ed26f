# saigekit

Building blocks for single-variant and region-based (burden) association
testing on genotype data: reading PLINK binary filesets, marker quality
control, variant weights, grouping of variants by annotation and MAF cutoff,
chunked variance matrices, Firth logistic regression and tab-separated
result files.

## Install

```
pip install saigekit
pip install "saigekit[test]"   # with pytest for the test suite
```

Requires Python 3.10 or later, numpy and scipy.

## Modules

### `saigekit.plink`

Reads SNP-major PLINK 1 binary filesets.

- `read_bim(path)` returns a list of `BimRecord` (chromosome, marker ID,
  genetic distance, position, and the two alleles upper-cased).
- `read_fam(path)` returns the individual IDs (second column).
- `PlinkReader(bim_file, fam_file, bed_file, allele_order)` opens the
  fileset and checks the `.bed` header. `allele_order` is an `AlleleOrder`
  (`"alt-first"`, the default, or `"ref-first"`). It is a context manager;
  `close()` releases the `.bed` file.
- `PlinkReader.set_samples(sample_ids)` selects and orders the samples whose
  genotypes are returned. At first every sample in the `.fam` file is used.
- `PlinkReader.read_marker(index, true_genotype=True)` returns a
  `PlinkMarker` with dosages (missing calls as -1), ALT allele frequency and
  count, missing rate, and the indices of missing and non-zero samples. With
  `true_genotype=False` the raw two-bit codes are returned instead.
- `encode_dosages(dosages)` packs ALT-first dosages (`None` for missing) into
  one `.bed` marker block, which is handy for writing small test filesets.

Malformed files, unknown samples, out-of-range indices and reads from a
closed reader raise `PlinkError`.

### `saigekit.settings`

- `QcThresholds` holds the marker-level cutoffs (missing rate, MAF, MAC,
  INFO) and test options; `passes(missing_rate, maf, mac, info)` applies them.
- `RegionSettings` holds the region options; `max_maf_limit()` is the largest
  MAF cutoff.
- `OutputPaths.from_prefix(prefix)` derives the group, single-variant and
  single-in-group (`.singleAssoc.txt`, plus a `_temp` copy) file names.
- `marker_index_pairs(geno_type, indices, prev_indices=None)` yields
  `(previous_index, index)` pairs from index strings: for `"plink"` the
  previous index is the preceding entry, for `"bgen"` it comes from
  `prev_indices`, and the first marker always gets 0.

### `saigekit.genotype`

- `double_male_non_par(genotypes, position, par_regions, male_indices)`
  doubles male dosages unless the position lies in a pseudo-autosomal region.
- `beta_weight(maf, a=1, b=25)` is the Beta(a, b) density at the MAF.
- `genotype_class_counts(dosages)` counts homozygous (dosage in [1.5, 2]) and
  heterozygous (in [0.5, 1.5)) calls.
- `case_control_summary(dosages, case_indices, ctrl_indices, flip=False, more_output=False)`
  returns a `CaseControlSummary` with case and control allele frequencies,
  sample counts, allele counts and, with `more_output`, genotype class counts.
- `format_max_maf(value)` renders a MAF cutoff with trailing zeros removed.

### `saigekit.firth`

`logistf_fit(x, y, weight=None, offset=None, firth=True, init=None, maxit=25, maxstep=5, gconv=1e-5, xconv=1e-5)`
fits a logistic model by Newton-Raphson, with Firth's correction if asked,
and returns a `LogisticFit` (coefficients, converged flag, iteration count,
covariance).

### `saigekit.output`

- `SingleVariantResult` and `BurdenResult` hold one row each; rows whose
  p-value is `"NA"` count as untested and are skipped by the writers.
- `single_header(...)` and `burden_header(...)` give the header lines for a
  trait type (`"binary"` or `"quantitative"`) and the chosen options.
- `write_single_results(stream, results, trait_type, ...)` writes the tested
  variants and returns `(rows written, ultra-rare rows written)`.
- `write_burden_results(stream, region_name, results, cct_pvalue, ...)`
  writes the tested groups followed by a `Cauchy` row holding the given
  combined p-value.
- `format_number(value)` formats values as the files show them; numbers use
  `%g`.
- `append_file(source, stream)` copies the lines of one file to a stream.

### `saigekit.region`

- `GroupAccumulator(n_samples, n_anno, max_maf, weight_customized=False)`
  collects variants into annotation × max-MAF groups. `add_common` adds
  weighted dosages and MAC sums. `add_ultra_rare` collapses ultra-rare
  variants by per-sample maximum. `collapsed_ultra_rare()` and
  `add_collapsed` fold the collapsed markers back into the burden sums.
  `max_maf_index_per_annotation()` gives the smallest cutoff covering each
  annotation. Set `case_indices` and `ctrl_indices` to also collect case and
  control allele counts.
- `ChunkedVariance(prefix)` stores `P1`/`P2` projection chunks on disk with
  `add_chunk`. `assemble()` builds the full symmetric matrix `P1 @ P2` and
  removes the chunk files; `cleanup()` removes them without assembling.

## Example

```python
from saigekit.plink import AlleleOrder, PlinkReader
from saigekit.settings import QcThresholds

qc = QcThresholds(min_mac=1.0)
with PlinkReader("data.bim", "data.fam", "data.bed", AlleleOrder.ALT_FIRST) as reader:
    reader.set_samples(["id1", "id2", "id3"])
    marker = reader.read_marker(0, True)
    maf = min(marker.alt_freq, 1 - marker.alt_freq)
    mac = min(marker.alt_counts, 2 * reader.n_samples - marker.alt_counts)
    print(marker.marker, qc.passes(marker.missing_rate, maf, mac, marker.impute_info))
```

## What it does not do

This package does not fit the null mixed model and does not compute score
tests, saddle-point approximations, conditional tests or Cauchy combinations.
The statistics and p-values that go into the result rows must come from
elsewhere. It reads PLINK filesets only, not BGEN or VCF. It has no
command-line program.

## Tests

```
pytest
```