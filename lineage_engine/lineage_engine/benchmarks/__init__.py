"""Synthetic configurations for performance benchmarks."""

from lineage_engine.benchmarks.config_generator import SyntheticConfigGenerator

__all__ = ["SyntheticConfigGenerator"]
