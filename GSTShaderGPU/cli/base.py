"""Shared CLI base class."""
from __future__ import annotations

import argparse
import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional


class BaseCLI(ABC):
    """Argument parsing, logging setup and output checks shared by commands."""

    def __init__(self):
        self.parser = self._create_parser()
        self.logger = logging.getLogger(__name__)

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description=self.get_description(),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self.get_epilog(),
        )

        parser.add_argument("output", help="Output PNG file")

        parser.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            default="INFO",
            help="Log level (default: INFO)",
        )

        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite the output file if it exists",
        )

        self._add_command_args(parser)
        return parser

    @abstractmethod
    def get_description(self) -> str:
        pass

    @abstractmethod
    def get_epilog(self) -> str:
        pass

    @abstractmethod
    def _add_command_args(self, parser: argparse.ArgumentParser):
        pass

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        parsed_args = self.parser.parse_args(args)

        logging.basicConfig(
            level=getattr(logging, parsed_args.log_level),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        self._validate_args(parsed_args)
        return parsed_args

    @abstractmethod
    def _validate_args(self, args: argparse.Namespace):
        pass

    @abstractmethod
    def execute(self, args: argparse.Namespace) -> int:
        pass

    def run(self, args: Optional[List[str]] = None) -> int:
        parsed_args = self.parse_args(args)

        if os.path.exists(parsed_args.output) and not parsed_args.force:
            self.logger.error(f"Output file already exists: {parsed_args.output}")
            self.logger.error("Use --force to overwrite it")
            raise FileExistsError(f"Output file already exists: {parsed_args.output}")

        return self.execute(parsed_args)
