"""Genotype matrix tools: PLINK .bed and BGEN access, clumping, LD and polygenic scores."""

__version__ = "0.1.0"