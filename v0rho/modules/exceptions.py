"""
Custom exceptions for the V0 / UPC rho analysis tasks

Provides a hierarchy of exceptions for configuration, input and histogram
bookkeeping problems. All custom exceptions inherit from AnalysisError for
easy catching.

Selection and kinematic code never raises: a rejected track, candidate or
event is a normal outcome reported as a boolean.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """
    Base exception for all analysis errors

    All custom exceptions inherit from this class, allowing users to catch
    all analysis-specific errors with a single except clause.
    """

    pass


class ConfigurationError(AnalysisError):
    """
    Raised when configuration is invalid or missing required fields

    Examples:
    - Missing required config file
    - Unknown cut name in a TOML section
    - Malformed axis specification
    """

    pass


class DataLoadError(AnalysisError):
    """
    Raised when input tables cannot be loaded

    Examples:
    - File not found
    - Missing tree in ROOT file
    - Daughter track reference that does not resolve
    """

    pass


class BranchMissingError(AnalysisError):
    """
    Raised when a required branch is not found in an input table

    Examples:
    - Missing column (e.g., track_px, v0_cos_pa)
    - Branch name typo in data.toml
    """

    def __init__(self, branch_name: str, file_path: str | None = None) -> None:
        """
        Initialize BranchMissingError

        Args:
            branch_name: Name of the missing branch
            file_path: Optional path to the file being read
        """
        self.branch_name = branch_name
        self.file_path = file_path

        message = f"Required branch '{branch_name}' not found"
        if file_path:
            message += f" in file: {file_path}"

        super().__init__(message)


class HistogramError(AnalysisError):
    """
    Raised when the histogram registry is used inconsistently

    Examples:
    - Registering the same histogram name twice
    - Filling a histogram that was never registered
    - Filling with the wrong number of coordinates
    """

    pass
