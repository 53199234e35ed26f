[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "saigekit"
version = "0.1.0"
description = "PLINK genotype reading, quality control, burden grouping, Firth logistic fits and result writing for genetic association tests"
requires-python = ">=3.10"
keywords = ["genetics", "association", "plink", "burden test", "firth", "gwas"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["saigekit"]

[tool.pytest.ini_options]
addopts = "-ra"
