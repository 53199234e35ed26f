"""PLINK reading, QC settings, variant grouping, Firth fits and result writing for association tests."""

__version__ = "0.1.0"

__all__ = ["firth", "genotype", "output", "plink", "region", "settings"]