"""TypeScript declaration output for resolved models and services.

Declarations are built in two phases. The standalone phase only looks at the
entity itself; the linked phase runs once every entity has its standalone
declarations and pulls in the instance classes of the models it references.
"""

from __future__ import annotations

import logging
import shutil
from importlib.resources import files
from pathlib import Path
from typing import List, Optional

from .jsdoc import serialize_doc
from .model import Annotation, EntityDescriptor, Function, ParsedDoc, Registry
from .resolve import WILDCARD


logger = logging.getLogger(__name__)

INDENT = "  "

ATTRIBUTE_DECLARATION_TYPES = {
	"string": "string",
	"number": "number",
	"boolean": "boolean",
	"json": "object",
	"ref": "any",
}

# invoked by the Sails runtime only, never by application code
LIFECYCLE_HOOKS = frozenset(
	{
		"beforeCreate",
		"afterCreate",
		"beforeUpdate",
		"afterUpdate",
		"beforeDestroy",
		"afterDestroy",
		"customToJSON",
	}
)
SERIALIZATION_HOOK = "customToJSON"
SERIALIZATION_METHOD = "toJSON?"
ASYNC_TAG = "@async"

ID_DOC = ParsedDoc(
	description="A unique identifier generated for each document within the database. "
	"Of type string if using MongoDB, otherwise a number."
)

BASE_MODEL_IMPORT = "import { $ailsModel } from '../sails/model';"
TEMPLATE_FILES = ("model.d.ts", "public.d.ts", "sails.ts")


def instance_type(name: str) -> str:
	return f"${name}Instance"


def _member(doc: str, declaration: str) -> str:
	if doc:
		return f"{doc}\n{INDENT}{declaration}"
	return f"{INDENT}{declaration}"


def _class(header: str, members: List[str]) -> str:
	if not members:
		return header + " {\n}"
	return header + " {\n\n" + "\n\n".join(members) + "\n\n}"


def attribute_type(properties: dict) -> str:
	if properties.get("type"):
		return ATTRIBUTE_DECLARATION_TYPES.get(properties["type"], WILDCARD)
	if properties.get("model"):
		return instance_type(properties["model"])
	if properties.get("collection"):
		return instance_type(properties["collection"]) + "[]"
	return WILDCARD


def instance_members(model: EntityDescriptor) -> List[str]:
	members: List[str] = []
	if not any(attr.name == "id" for attr in model.attributes):
		members.append(_member(serialize_doc(ID_DOC, INDENT), "id: string | number;"))
	for attr in model.attributes:
		marker = "" if attr.properties.get("required") else "?"
		members.append(
			_member(
				serialize_doc(attr.doc, INDENT),
				f"{attr.name}{marker}: {attribute_type(attr.properties)};",
			)
		)
	return members


def _result_type(func: Function) -> str:
	returns = func.doc.returns if func.doc is not None else None
	types = returns.types if returns is not None and returns.types else [WILDCARD]
	result = " | ".join(types)
	if func.is_async and not (len(types) == 1 and types[0].startswith("Promise<")):
		result = f"Promise<{result}>"
	return result


def method_signature(func: Function, name: Optional[str] = None) -> str:
	params: List[str] = []
	for param in func.typed_params:
		types = param.types or [WILDCARD]
		if param.is_rest:
			types = [t if t.endswith("[]") else t + "[]" for t in types]
		# rest parameters are implicitly optional and may not be marked as such
		marker = "?" if param.optional and not param.is_rest else ""
		params.append(f"{param.name}{marker}: {' | '.join(types)}")

	doc = func.doc.model_copy(deep=True) if func.doc is not None else ParsedDoc()
	if func.is_async and not any(a.tag == ASYNC_TAG for a in doc.annotations):
		doc.annotations.append(Annotation(tag=ASYNC_TAG))

	return _member(
		serialize_doc(doc, INDENT),
		f"abstract {name or func.name}({', '.join(params)}): {_result_type(func)};",
	)


def synthesize_standalone(entity: EntityDescriptor) -> EntityDescriptor:
	"""Build the instance/static declarations that only need the entity's own data."""
	if entity.is_model:
		members = instance_members(entity)
		serializer = next((f for f in entity.functions if f.name == SERIALIZATION_HOOK), None)
		if serializer is not None:
			members.append(method_signature(serializer, SERIALIZATION_METHOD))
		entity.declarations.instance = _class(
			f"export declare abstract class {instance_type(entity.name)}",
			members,
		)
		statics = [method_signature(f) for f in entity.functions if f.name not in LIFECYCLE_HOOKS]
		entity.declarations.static = _class(
			f"export declare abstract class {entity.name} extends $ailsModel<{instance_type(entity.name)}>",
			statics,
		)
	else:
		entity.declarations.static = _class(
			f"export declare abstract class {entity.name}",
			[method_signature(f) for f in entity.functions],
		)
	return entity


def collect_linked_instances(entity: EntityDescriptor, models: Registry) -> List[str]:
	"""Instance declarations of the models directly imported by an entity.

	Only one hop is followed: the imports of an imported model are left as
	plain instance type names.
	"""
	pending = list(reversed(entity.imports))
	visited = set()
	collected: List[str] = []
	while pending:
		name = pending.pop()
		if name == entity.name or name in visited:
			continue
		target = models.get(name)
		if target is None:
			logger.warning("Failed to import model %s within %s.", name, entity.describe())
			break
		visited.add(name)
		if target.declarations.instance is None:
			logger.warning(
				"Model %s has no instance declaration yet, it will be missing from %s.",
				name,
				entity.describe(),
			)
			continue
		collected.append(target.declarations.instance)
	return collected


def synthesize_linked(entity: EntityDescriptor, models: Registry) -> EntityDescriptor:
	if entity.declarations.static is None:
		raise RuntimeError(f"{entity.describe()} has no standalone declarations to link")

	sections: List[str] = []
	if entity.is_model:
		sections.append(BASE_MODEL_IMPORT)
	linked = collect_linked_instances(entity, models)
	if linked:
		sections.append("// Referenced instance classes...\n" + "\n\n".join(linked))
	if entity.is_model:
		sections.append("// Main instance class...\n" + entity.declarations.instance)
	sections.append("// Main static class...\n" + entity.declarations.static)

	entity.declarations.linked = "\n\n".join(sections) + "\n"
	return entity


def generate_globals(models: Registry, services: Registry) -> str:
	lines = [
		"import { sails } from './sails/sails';",
		"import { SailsRequest, SailsResponse } from './sails/public';",
	]
	if models:
		lines += ["", "// Models"]
		lines += [f"import {{ {name}, {instance_type(name)} }} from './models/{name}';" for name in models]
	if services:
		lines += ["", "// Services"]
		lines += [f"import {{ {name} }} from './services/{name}';" for name in services]

	lines += [
		"",
		"declare global {",
		"",
		f"{INDENT}const sails: sails;",
		f"{INDENT}const SailsRequest: SailsRequest;",
		f"{INDENT}const SailsResponse: SailsResponse;",
	]
	if models:
		lines.append("")
		lines += [f"{INDENT}const {name}: {name};" for name in models]
		lines.append("")
		lines += [f"{INDENT}const {instance_type(name)}: {instance_type(name)};" for name in models]
	if services:
		lines.append("")
		lines += [f"{INDENT}const {name}: {name};" for name in services]
	lines += ["", "}", ""]
	return "\n".join(lines)


def _write(path: Path, text: str, written: List[str]) -> None:
	path.write_text(text, encoding="utf-8")
	written.append(str(path))


def write_output(out_dir: str, models: Registry, services: Registry) -> List[str]:
	"""Replace ``out_dir`` with a fresh declaration tree and return the written paths.

	Nothing is rolled back on failure; a partially written tree is left behind.
	"""
	out = Path(out_dir)
	if out.exists():
		shutil.rmtree(out)
	for sub in ("sails", "models", "services"):
		(out / sub).mkdir(parents=True)

	written: List[str] = []
	templates = files("typegen") / "templates" / "sails"
	for name in TEMPLATE_FILES:
		_write(out / "sails" / name, (templates / name).read_text(encoding="utf-8"), written)

	_write(out / "globals.d.ts", generate_globals(models, services), written)

	for area, entities in (("models", models), ("services", services)):
		for entity in entities.values():
			if entity.declarations.linked is None:
				raise RuntimeError(f"{entity.describe()} has no linked declarations to write")
			_write(out / area / f"{entity.name}.d.ts", entity.declarations.linked, written)

	logger.debug("Wrote %d declaration files to %s", len(written), out)
	return written
