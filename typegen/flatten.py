from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

import tree_sitter as ts
import tree_sitter_javascript as tsjs

from .errors import ModuleLoadError, StructuralError
from .jsdoc import parse_doc, strip_comment_delimiters
from .model import Attribute, EntityDescriptor, EntityKind, Function, ParsedDoc


logger = logging.getLogger(__name__)

JS_LANGUAGE = ts.Language(tsjs.language())

FUNCTION_VALUE_TYPES = {"function_expression", "function", "arrow_function", "generator_function"}
KEY_TYPES = {"property_identifier", "identifier", "string"}


def parse_source(text: str) -> ts.Tree:
	# parsers are cheap and not shareable between threads
	parser = ts.Parser(JS_LANGUAGE)
	return parser.parse(text.encode("utf-8"))


def _text(node: ts.Node) -> str:
	return node.text.decode("utf-8")


def _walk(node: ts.Node) -> Iterator[ts.Node]:
	stack = [node]
	while stack:
		current = stack.pop()
		yield current
		stack.extend(reversed(current.children))


def _first_error_line(root: ts.Node) -> Optional[int]:
	for node in _walk(root):
		if node.type == "ERROR" or node.is_missing:
			return node.start_point[0] + 1
	return None


_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def _decode_escape(sequence: str) -> str:
	body = sequence[1:]
	if body[:1] in ("x", "u"):
		try:
			return chr(int(body[1:].strip("{}"), 16))
		except ValueError:
			return body
	if body[:1] in ("\r", "\n", "\u2028", "\u2029"):
		# line continuation
		return ""
	return _SIMPLE_ESCAPES.get(body, body)


def _string_value(node: ts.Node) -> str:
	parts: List[str] = []
	for child in node.named_children:
		if child.type == "escape_sequence":
			parts.append(_decode_escape(_text(child)))
		else:
			parts.append(_text(child))
	return "".join(parts)


def _key_name(node: Optional[ts.Node]) -> Optional[str]:
	if node is None or node.type not in KEY_TYPES:
		return None
	text = _text(node)
	if node.type == "string":
		return _string_value(node)
	return text


def _literal_value(node: ts.Node) -> Any:
	"""Python value of a scalar literal, or None for anything else."""
	if node.type == "string":
		return _string_value(node)
	if node.type == "number":
		text = _text(node)
		try:
			return int(text, 0)
		except ValueError:
			try:
				return float(text)
			except ValueError:
				return None
	if node.type == "true":
		return True
	if node.type == "false":
		return False
	return None


def _leading_doc(node: ts.Node) -> Optional[ParsedDoc]:
	comment = node.prev_named_sibling
	if comment is None or comment.type != "comment":
		return None
	text = _text(comment)
	if not text.startswith("/*"):
		return None
	return parse_doc(strip_comment_delimiters(text))


def _is_async(node: ts.Node) -> bool:
	return any(child.type == "async" for child in node.children)


def find_module_exports(root: ts.Node) -> Optional[ts.Node]:
	"""The object literal assigned to ``module.exports``, if there is one."""
	for statement in root.named_children:
		if statement.type != "expression_statement" or not statement.named_children:
			continue
		expr = statement.named_children[0]
		if expr.type != "assignment_expression":
			continue
		left = expr.child_by_field_name("left")
		right = expr.child_by_field_name("right")
		if left is None or right is None or left.type != "member_expression":
			continue
		obj = left.child_by_field_name("object")
		prop = left.child_by_field_name("property")
		if obj is None or prop is None or _text(obj) != "module" or _text(prop) != "exports":
			continue
		if right.type == "object":
			return right
	return None


def find_attributes_object(exports: ts.Node, entity: EntityDescriptor) -> Optional[ts.Node]:
	for prop in exports.named_children:
		if prop.type == "shorthand_property_identifier" and _text(prop) == "attributes":
			logger.warning(
				"Found shorthand attributes key in %s. Please note that this is not currently supported, "
				"and that inline attributes should be used instead.",
				entity.describe(),
			)
			return None
		if prop.type != "pair" or _key_name(prop.child_by_field_name("key")) != "attributes":
			continue
		value = prop.child_by_field_name("value")
		if value is None or value.type != "object":
			logger.warning(
				"Found attributes in %s declared as %s, expected an object expression. "
				"No attribute types will be generated.",
				entity.describe(),
				value.type if value is not None else "nothing",
			)
			return None
		return value
	return None


def extract_attribute_properties(attr_obj: ts.Node, attr_name: str, entity: EntityDescriptor) -> Dict[str, Any]:
	out: Dict[str, Any] = {}
	for prop in attr_obj.named_children:
		if prop.type != "pair":
			continue
		key = _key_name(prop.child_by_field_name("key"))
		value = prop.child_by_field_name("value")
		if key is None or value is None:
			continue
		literal = _literal_value(value)
		if literal is None:
			continue
		if key in out:
			logger.warning(
				'Duplicate key "%s" used in attribute "%s" definition in %s. Using new key value...',
				key,
				attr_name,
				entity.describe(),
			)
		out[key] = literal
	return out


def extract_attributes(attributes_obj: ts.Node, entity: EntityDescriptor) -> List[Attribute]:
	attributes: List[Attribute] = []
	# attribute names end up as column names, which are case-insensitive
	seen: Dict[str, str] = {}
	for prop in attributes_obj.named_children:
		if prop.type != "pair":
			continue
		name = _key_name(prop.child_by_field_name("key"))
		value = prop.child_by_field_name("value")
		if name is None or value is None:
			continue
		if value.type != "object":
			logger.warning(
				'Found invalid attribute "%s" in %s. Expected an object expression but found %s instead.',
				name,
				entity.describe(),
				value.type,
			)
			continue
		previous = seen.get(name.lower())
		if previous is not None:
			raise StructuralError(
				f'Found attribute conflict in {entity.describe()} (owner: {entity.owner}). The "{name}" '
				f'attribute\'s identity has already been assigned by "{previous}".'
			)
		seen[name.lower()] = name
		attributes.append(
			Attribute(
				name=name,
				properties=extract_attribute_properties(value, name, entity),
				doc=_leading_doc(prop),
			)
		)
	return attributes


def extract_params(func_node: ts.Node) -> List[str]:
	single = func_node.child_by_field_name("parameter")
	if single is not None:
		return [_text(single)] if single.type == "identifier" else []

	params_node = func_node.child_by_field_name("parameters")
	if params_node is None:
		return []
	params: List[str] = []
	for param in params_node.named_children:
		if param.type == "identifier":
			params.append(_text(param))
		elif param.type == "rest_pattern":
			inner = param.named_children[0] if param.named_children else None
			if inner is not None and inner.type == "identifier":
				params.append("..." + _text(inner))
	return params


def extract_functions(exports: ts.Node, entity: EntityDescriptor) -> List[Function]:
	functions: List[Function] = []
	for prop in exports.named_children:
		if prop.type == "method_definition":
			name = _key_name(prop.child_by_field_name("name"))
			func_node = prop
		elif prop.type == "pair":
			value = prop.child_by_field_name("value")
			if value is None or value.type not in FUNCTION_VALUE_TYPES:
				continue
			name = _key_name(prop.child_by_field_name("key"))
			if name is None:
				continue
			logger.warning(
				'Found method "%s" defined as property in %s. Please use the ES2015 object method syntax instead!',
				name,
				entity.describe(),
			)
			func_node = value
		else:
			continue
		if name is None:
			continue
		functions.append(
			Function(
				name=name,
				params=extract_params(func_node),
				is_async=_is_async(func_node),
				doc=_leading_doc(prop),
			)
		)
	return functions


def flatten_module(
	name: str,
	filename: str,
	text: str,
	kind: EntityKind,
	owner: str = "root project",
) -> EntityDescriptor:
	"""Pull attributes and methods out of a model/service module's ``module.exports``."""
	entity = EntityDescriptor(name=name, filename=filename, kind=kind, owner=owner)
	tree = parse_source(text)
	error_line = _first_error_line(tree.root_node)
	if error_line is not None:
		raise ModuleLoadError(f'Failed to load {kind.value} file "{filename}": syntax error on line {error_line}.')

	exports = find_module_exports(tree.root_node)
	if exports is None:
		logger.warning(
			"No module.exports assignment found for %s, type information will not be generated.",
			entity.describe(),
		)
		return entity

	attributes_obj = find_attributes_object(exports, entity)
	if attributes_obj is not None:
		entity.attributes = extract_attributes(attributes_obj, entity)
	entity.functions = extract_functions(exports, entity)
	return entity
