"""
Common utilities for the store sales forecasting pipeline.
"""

from .exceptions import ParseError, FitError, ForecastAlignmentError
from .data_loader import DataLoader
from .preprocessing import Preprocessor
from .visualization import Visualizer
from .reporting import Reporter

__all__ = [
    "DataLoader",
    "Preprocessor",
    "Visualizer",
    "Reporter",
    "ParseError",
    "FitError",
    "ForecastAlignmentError",
]
