"""Console logging setup for the command line.

The library modules only ever log through ``logging.getLogger(__name__)``;
this installs a rich handler on the root logger so those records render nicely.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
	root_logger = logging.getLogger()
	for handler in list(root_logger.handlers):
		if isinstance(handler, RichHandler):
			root_logger.removeHandler(handler)

	handler = RichHandler(
		console=console or Console(stderr=True),
		show_time=False,
		show_path=False,
		markup=False,
		rich_tracebacks=True,
	)
	root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
	root_logger.addHandler(handler)
