[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ldgeno"
version = "0.1.0"
description = "Genotype matrix tools: PLINK .bed and BGEN reading, clumping, LD scores, LD block splitting and LDpred2/lassosum2 polygenic scores"
requires-python = ">=3.10"
dependencies = [
    "numpy",
    "scipy",
]
keywords = [
    "genetics",
    "genotypes",
    "plink",
    "bgen",
    "linkage-disequilibrium",
    "clumping",
    "ldpred2",
    "lassosum2",
    "polygenic-score",
]
classifiers = [
    "Development Status :: 4 - Beta",
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

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ldgeno"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
