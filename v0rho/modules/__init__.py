"""
Selection, reconstruction, histogramming and I/O building blocks shared by
the analysis tasks.
"""

from .exceptions import (
    AnalysisError,
    BranchMissingError,
    ConfigurationError,
    DataLoadError,
    HistogramError,
)
from .histograms import Axis, HistogramRegistry

__all__ = [
    "AnalysisError",
    "Axis",
    "BranchMissingError",
    "ConfigurationError",
    "DataLoadError",
    "HistogramError",
    "HistogramRegistry",
]
