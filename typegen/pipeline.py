from __future__ import annotations

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple

from .config import GeneratorConfig
from .errors import ModuleLoadError, ProjectError, StructuralError
from .flatten import flatten_module
from .fs_scan import scan_sources
from .model import EntityDescriptor, GenerationResult, Registry, SourceFile
from .project import discover_project
from .resolve import resolve_types
from .summarize import summarize_run
from .synthesize import synthesize_linked, synthesize_standalone, write_output


logger = logging.getLogger(__name__)

JSCONFIG_FILE = "jsconfig.json"


def load_entity(source: SourceFile) -> EntityDescriptor:
	try:
		with open(source.path, "r", encoding="utf-8") as fh:
			text = fh.read()
	except (OSError, UnicodeDecodeError) as e:
		raise ModuleLoadError(f'Failed to load {source.kind.value} file "{source.path}": {e}') from e
	return flatten_module(source.name, source.rel_path, text, source.kind, source.owner)


def load_entities(sources: List[SourceFile], max_workers: int = 8) -> List[EntityDescriptor]:
	"""Flatten every source module concurrently.

	Results come back in the order of ``sources``. The first failure cancels
	whatever has not started yet and is re-raised, so callers never see a
	partial list.
	"""
	if not sources:
		return []
	results: List[Optional[EntityDescriptor]] = [None] * len(sources)
	with ThreadPoolExecutor(max_workers=max_workers) as executor:
		futures = {executor.submit(load_entity, source): i for i, source in enumerate(sources)}
		try:
			for future in as_completed(futures):
				results[futures[future]] = future.result()
		except BaseException:
			for future in futures:
				future.cancel()
			raise
	return [entity for entity in results if entity is not None]


def build_registry(entities: List[EntityDescriptor]) -> Tuple[Registry, Registry]:
	"""Split entities into model and service registries, rejecting duplicate names."""
	models: Registry = {}
	services: Registry = {}
	seen: Dict[str, EntityDescriptor] = {}
	for entity in entities:
		duplicate = seen.get(entity.name.lower())
		if duplicate is not None:
			raise StructuralError(
				f'Found duplicate definition of {entity.kind.value} "{entity.name}" ({entity.filename}) in '
				f'{entity.owner} (defined already in "{duplicate.filename}" [{duplicate.owner}]).'
			)
		seen[entity.name.lower()] = entity
		if entity.is_model:
			models[entity.name] = entity
		else:
			services[entity.name] = entity
	return models, services


def build_declarations(models: Registry, services: Registry) -> None:
	entities = list(models.values()) + list(services.values())
	for entity in entities:
		resolve_types(entity, models)
		synthesize_standalone(entity)
	# any entity may reference any other, so linking waits until all are resolved
	for entity in entities:
		synthesize_linked(entity, models)


def collect_sources(config: GeneratorConfig) -> List[SourceFile]:
	if not os.path.isdir(config.root):
		raise ProjectError(f"Invalid project root: {config.root}")
	_, hooks = discover_project(config.root, config.hook_marker, config.include_hooks)
	sources = scan_sources(config.root)
	for hook in hooks:
		logger.info("Including type hook %s", hook.name)
		sources += scan_sources(hook.path, owner=hook.name)
	logger.info("Found %d model and service modules", len(sources))
	return sources


def prepare(config: GeneratorConfig) -> Tuple[Registry, Registry]:
	"""Load, resolve and synthesize every entity of the project without writing anything."""
	entities = load_entities(collect_sources(config), config.max_workers)
	models, services = build_registry(entities)
	build_declarations(models, services)
	return models, services


def write_jsconfig(root: str, out_dir: str) -> Optional[str]:
	path = os.path.join(root, JSCONFIG_FILE)
	if os.path.exists(path):
		return None
	rel_out = os.path.relpath(out_dir, root).replace(os.sep, "/")
	data = {
		"compilerOptions": {"target": "es2017"},
		"include": [f"./{rel_out}/globals.d.ts", "**/*.js"],
		"exclude": ["node_modules"],
	}
	with open(path, "w", encoding="utf-8") as fh:
		json.dump(data, fh, indent=2)
	logger.info("Created %s", path)
	return path


def check_out_dir(root: str, out_dir: str) -> None:
	"""Reject output directories whose wipe would take the project with it."""
	real_root = os.path.realpath(root)
	real_out = os.path.realpath(out_dir)
	if os.path.commonpath([real_root, real_out]) == real_out:
		raise ProjectError(
			f'Refusing to use "{out_dir}" as output directory: it contains the project root "{root}" '
			f"and is cleared on every run."
		)


def generate(config: GeneratorConfig) -> GenerationResult:
	check_out_dir(config.root, config.out_dir)
	models, services = prepare(config)
	files = write_output(config.out_dir, models, services)
	if config.write_jsconfig:
		write_jsconfig(config.root, config.out_dir)

	return GenerationResult(
		root=config.root,
		out_dir=config.out_dir,
		models=list(models),
		services=list(services),
		files=files,
		summaries=summarize_run(models, services, config.out_dir, files),
	)
