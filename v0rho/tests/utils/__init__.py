"""
Test utilities.

Provides synthetic input files and tables for the integration tests.
"""

from .mock_data_generator import (
    GOOD_COLLISION,
    GOOD_JET,
    GOOD_TRACK,
    GOOD_V0,
    create_mock_ao2d_file,
    generate_mock_tables,
    mock_columns,
)

__all__ = [
    "GOOD_COLLISION",
    "GOOD_JET",
    "GOOD_TRACK",
    "GOOD_V0",
    "create_mock_ao2d_file",
    "generate_mock_tables",
    "mock_columns",
]
