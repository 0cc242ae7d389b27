from __future__ import annotations

from typing import Dict, List

from .model import EntityDescriptor, Registry, Summaries


def summarize_entity(e: EntityDescriptor) -> str:
	parts: List[str] = []
	parts.append(f"{e.kind.value.capitalize()} {e.name} at {e.filename}")
	if e.attributes:
		parts.append(f"  Attributes: {', '.join(a.name for a in e.attributes)}")
	if e.functions:
		parts.append(f"  Methods: {', '.join(fn.name for fn in e.functions)}")
	if e.imports:
		parts.append(f"  Imports: {', '.join(e.imports)}")
	return "\n".join(parts)


def summarize_run(models: Registry, services: Registry, out_dir: str, files: List[str]) -> Summaries:
	per_entity: Dict[str, str] = {}
	for e in list(models.values()) + list(services.values()):
		per_entity[e.name] = summarize_entity(e)

	attr_count = sum(len(m.attributes) for m in models.values())
	func_count = sum(len(e.functions) for e in list(models.values()) + list(services.values()))
	global_overview = (
		f"Generated {len(files)} files in {out_dir}: {len(models)} models, "
		f"{len(services)} services, {attr_count} attributes, {func_count} methods"
	)

	return Summaries(global_overview=global_overview, per_entity=per_entity)
