"""Run configuration for skim computations."""

from .skim_config import SkimConfig

__all__ = ["SkimConfig"]
