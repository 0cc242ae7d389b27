from __future__ import annotations

import argparse
import logging
import os
import sys
import time

import uvicorn

from typegen.config import GeneratorConfig
from typegen.console import configure_logging
from typegen.errors import TypegenError
from typegen.pipeline import generate


logger = logging.getLogger("typegen.cli")


def cmd_generate(args: argparse.Namespace) -> int:
	config = GeneratorConfig(
		root=args.path,
		out_dir=args.out,
		write_jsconfig=not args.no_jsconfig,
		include_hooks=not args.no_hooks,
		max_workers=args.workers,
	)
	logger.info("processing Sails project at %s...", config.root)
	started = time.monotonic()
	try:
		result = generate(config)
	except TypegenError as e:
		logger.error("%s", e)
		return 1

	for text in result.summaries.per_entity.values():
		logger.debug("%s", text)
	logger.info("%s", result.summaries.global_overview)
	logger.info("finished after %.2fs", time.monotonic() - started)
	if args.json:
		print(result.model_dump_json(indent=2))
	return 0


def cmd_serve(args: argparse.Namespace) -> int:
	uvicorn.run("api:app", host=args.host, port=args.port, reload=args.reload)
	return 0


def main() -> None:
	parser = argparse.ArgumentParser(prog="sails-typegen")
	parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
	sub = parser.add_subparsers(dest="cmd", required=True)

	pg = sub.add_parser("generate", help="Generate TypeScript declarations for a Sails project")
	pg.add_argument("path", nargs="?", default=os.getcwd(), help="Path to project root (default: cwd)")
	pg.add_argument("--out", default=None, help="Output directory (default: <path>/.types)")
	pg.add_argument("--no-jsconfig", action="store_true", help="Do not create a jsconfig.json")
	pg.add_argument("--no-hooks", action="store_true", help="Skip installed type hooks")
	pg.add_argument("--workers", type=int, default=8, help="Modules parsed concurrently")
	pg.add_argument("--json", action="store_true", help="Print the run result as JSON")
	pg.set_defaults(func=cmd_generate)

	ps = sub.add_parser("serve", help="Run FastAPI server")
	ps.add_argument("--host", default="127.0.0.1")
	ps.add_argument("--port", type=int, default=8000)
	ps.add_argument("--reload", action="store_true")
	ps.set_defaults(func=cmd_serve)

	args = parser.parse_args()
	configure_logging(args.verbose)
	sys.exit(args.func(args))


if __name__ == "__main__":
	main()
