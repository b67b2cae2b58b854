#!/usr/bin/env python3
"""
Command-line driver for the Lambda V0 QA and UPC rho tasks

Loads the configuration and the input tables, runs one task over every
collision and writes the histogram registry to a ROOT file.

Usage:
  v0rho-run lambda AO2D.root [--config-dir DIR] [--output FILE] [--max-events N]
  v0rho-run upc AO2D.root --output upc_results.root --verbose
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from .modules.data_handler import DataManager, TOMLConfig
from .modules.exceptions import AnalysisError
from .modules.histograms import HistogramRegistry
from .tasks.lambda_polarization import LambdaJetPolarizationTask
from .tasks.upc_rho import UpcRhoAnalysisTask
from .utils.logging_config import get_tqdm_kwargs, setup_logging, suppress_warnings

TASKS = {
    "lambda": LambdaJetPolarizationTask,
    "upc": UpcRhoAnalysisTask,
}


class PipelineManager:
    """
    Runs one analysis task over an input file.

    Attributes:
        config: Loaded TOML configuration
        data_manager: Reader for the input tables
    """

    def __init__(self, config_dir: str | Path | None = None) -> None:
        """
        Initialize pipeline manager.

        Args:
            config_dir: Configuration directory (package defaults if None)
        """
        self.config: TOMLConfig = TOMLConfig(config_dir)
        self.data_manager: DataManager = DataManager(self.config)
        self.logger = logging.getLogger("V0Rho.Pipeline")

    def run(
        self,
        task_name: str,
        input_path: str | Path,
        output_path: str | Path | None = None,
        max_events: int | None = None,
    ) -> HistogramRegistry:
        """
        Process an input file with the named task.

        Args:
            task_name: "lambda" or "upc"
            input_path: ROOT file with the input tables
            output_path: Result file (data.toml default if None)
            max_events: Stop after this many collisions

        Returns:
            The filled histogram registry
        """
        if task_name not in TASKS:
            raise AnalysisError(f"Unknown task '{task_name}', choose from {sorted(TASKS)}")

        registry = HistogramRegistry(task_name)
        task = TASKS[task_name].from_config(self.config, registry)

        tables = self.data_manager.load_tables(input_path)
        n_events = self.data_manager.count_events(tables, max_events)
        self.logger.info(f"Running '{task_name}' over {n_events} collisions from {input_path}")

        events = self.data_manager.iter_events(tables, max_events=max_events)
        for event in tqdm(events, total=n_events, **get_tqdm_kwargs(f"{task_name} task")):
            task.process(event)

        for label, value in task.summary().items():
            self.logger.info(f"  {label}: {value:g}")

        output_path = Path(output_path or self.config.get_output_file())
        registry.write_root(output_path)
        return registry


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Lambda V0 QA and UPC rho reconstruction tasks")
    parser.add_argument("task", choices=sorted(TASKS), help="Task to run")
    parser.add_argument("input", help="Input ROOT file with collisions/tracks/v0s/jets trees")
    parser.add_argument(
        "--config-dir",
        default=None,
        help="Directory with lambda_polarization.toml, upc_rho.toml and data.toml "
        "(default: configuration shipped with the package)",
    )
    parser.add_argument("--output", default=None, help="Output ROOT file (default: from data.toml)")
    parser.add_argument(
        "--max-events", type=int, default=None, help="Process at most this many collisions"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point with argument parsing"""
    args = parse_args(argv)
    logger = setup_logging(args.verbose)
    suppress_warnings("default" if args.verbose else "off")

    try:
        pipeline = PipelineManager(config_dir=args.config_dir)
        pipeline.run(args.task, args.input, args.output, args.max_events)
    except AnalysisError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
