"""Type resolution for flattened models and services.

Every type string found in JSDoc is checked against a small grammar:

    TYPE := "..." TYPE            rest prefix (validated, then dropped)
          | TYPE "[]"             array
          | "Promise<" UNION ">"  async result
          | "$" NAME "Instance"   model instance, NAME must be a known model
          | KEYWORD               scalar keyword
          | <anything else>       coerced to "any"

Coercion happens per leaf, so ``Bogus[]`` becomes ``any[]`` rather than
failing the whole declaration. Attributes, on the other hand, are validated
strictly: a broken attribute definition is a StructuralError.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from .errors import StructuralError
from .jsdoc import split_union
from .model import Attribute, EntityDescriptor, Function, Registry, TypedParam


logger = logging.getLogger(__name__)

WILDCARD = "any"

# scalar keywords and their declaration spelling
SCALAR_KEYWORDS: Dict[str, str] = {
	"string": "string",
	"String": "String",
	"number": "number",
	"Number": "Number",
	"boolean": "boolean",
	"Boolean": "Boolean",
	"object": "object",
	"Object": "Object",
	"array": "any[]",
	"Array": "Array",
	"function": "Function",
	"Function": "Function",
	"void": "void",
	"any": "any",
}

ATTRIBUTE_TYPES = ("string", "number", "boolean", "json", "ref")
ASSOCIATION_KEYS = ("model", "collection")
KIND_KEYS = ("type", "model", "collection")

_REST = re.compile(r"^\.\.\.(?P<inner>.+)$")
_ARRAY = re.compile(r"^(?P<inner>.+)\[\]$")
_PROMISE = re.compile(r"^Promise<(?P<inner>.*)>$")
_INSTANCE = re.compile(r"^\$(?P<name>[A-Za-z_$][A-Za-z0-9_$]*?)Instance$")


def normalize_type(type_name: str, models: Registry) -> str:
	t = type_name.strip()

	m = _REST.match(t)
	if m:
		return normalize_type(m.group("inner"), models)

	m = _ARRAY.match(t)
	if m:
		return normalize_type(m.group("inner"), models) + "[]"

	m = _PROMISE.match(t)
	if m:
		members = [normalize_type(member, models) for member in split_union(m.group("inner"))]
		return "Promise<" + "|".join(_unique(members) or [WILDCARD]) + ">"

	m = _INSTANCE.match(t)
	if m:
		return t if m.group("name") in models else WILDCARD

	return SCALAR_KEYWORDS.get(t, WILDCARD)


def normalize_types(types: List[str], models: Registry) -> List[str]:
	return _unique([normalize_type(t, models) for t in types])


def referenced_entities(type_name: str) -> List[str]:
	"""Names of every entity whose instance type appears in a (normalized) type string."""
	t = type_name.strip()
	m = _REST.match(t) or _ARRAY.match(t)
	if m:
		return referenced_entities(m.group("inner"))
	m = _PROMISE.match(t)
	if m:
		names: List[str] = []
		for member in split_union(m.group("inner")):
			names.extend(referenced_entities(member))
		return names
	m = _INSTANCE.match(t)
	if m:
		return [m.group("name")]
	return []


def _unique(items: List[str]) -> List[str]:
	out: List[str] = []
	for item in items:
		if item not in out:
			out.append(item)
	return out


def _doc_name(param_name: str) -> str:
	return param_name[3:] if param_name.startswith("...") else param_name


def type_parameters(func: Function) -> List[TypedParam]:
	"""Zip raw parameter names with their documented types.

	Once a parameter is optional, every parameter after it is optional too,
	since optional parameters have to trail in a declaration signature.
	"""
	typed: List[TypedParam] = []
	seen_optional = False
	for name in func.params:
		documented = func.doc.find_parameter(_doc_name(name)) if func.doc else None
		types = list(documented.types) if documented and documented.types else [WILDCARD]
		if documented is not None and documented.optional:
			seen_optional = True
		typed.append(TypedParam(name=name, types=types, optional=seen_optional))
	return typed


def resolve_function(entity: EntityDescriptor, func: Function, models: Registry) -> None:
	if func.doc is not None:
		for param in func.doc.parameters:
			param.types = normalize_types(param.types, models)
		if func.doc.returns is not None:
			func.doc.returns.types = normalize_types(func.doc.returns.types, models)

	func.typed_params = type_parameters(func)

	referenced: List[str] = []
	for param in func.typed_params:
		referenced.extend(param.types)
	if func.doc is not None and func.doc.returns is not None:
		referenced.extend(func.doc.returns.types)
	for type_name in referenced:
		for name in referenced_entities(type_name):
			entity.add_import(name)


def find_model(identity: str, models: Registry) -> Optional[EntityDescriptor]:
	lowered = identity.lower()
	for name, model in models.items():
		if name.lower() == lowered:
			return model
	return None


def resolve_attribute(entity: EntityDescriptor, attr: Attribute, models: Registry) -> None:
	props = attr.properties
	if not any(props.get(key) for key in KIND_KEYS + ("through",)):
		raise StructuralError(
			f'Invalid attribute "{attr.name}" found in {entity.describe()}. Expected either a type or '
			f"association specified, but found neither! Please add a type, model, or collection property "
			f"for this attribute."
		)

	kinds = [key for key in KIND_KEYS if props.get(key)]
	if len(kinds) > 1:
		raise StructuralError(
			f'Conflicting attribute "{attr.name}" found in {entity.describe()}. Only one of '
			f"{', '.join(kinds)} may be specified."
		)

	if props.get("type"):
		if props["type"] not in ATTRIBUTE_TYPES:
			raise StructuralError(
				f'Invalid type "{props["type"]}" specified for attribute "{attr.name}" in '
				f"{entity.describe()}! Valid attribute values are: {', '.join(ATTRIBUTE_TYPES)}."
			)
		return

	for key in ASSOCIATION_KEYS:
		identity = props.get(key)
		if not identity:
			continue
		label = "model collection type" if key == "collection" else "model type"
		target = find_model(identity, models) if isinstance(identity, str) else None
		if target is None:
			raise StructuralError(
				f'Failed to resolve {label} "{identity}" for attribute "{attr.name}" in '
				f"{entity.describe()}. Valid models are: {', '.join(models)}."
			)
		if identity.lower() != identity:
			logger.warning(
				'Model identity "%s" for attribute "%s" should be all lowercase (in %s).',
				identity,
				attr.name,
				entity.describe(),
			)
		props[key] = target.name
		entity.add_import(target.name)


def resolve_types(entity: EntityDescriptor, models: Registry) -> EntityDescriptor:
	"""Normalize every declared type of an entity against the model registry.

	Fills in ``typed_params`` for each function, rewrites association targets to
	their canonical model names and collects ``imports``.
	"""
	for func in entity.functions:
		resolve_function(entity, func, models)
	for attr in entity.attributes:
		resolve_attribute(entity, attr, models)
	return entity
