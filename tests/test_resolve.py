import logging

import pytest

from typegen.errors import StructuralError
from typegen.model import Attribute, DocParameter, DocReturns, EntityKind, Function, ParsedDoc
from typegen.resolve import (
	find_model,
	normalize_type,
	referenced_entities,
	resolve_types,
	type_parameters,
)


@pytest.fixture
def registry(make_entity):
	return {
		"Post": make_entity("Post"),
		"User": make_entity("User"),
	}


def test_normalize_scalars_and_wildcards(registry):
	assert normalize_type("string", registry) == "string"
	assert normalize_type("array", registry) == "any[]"
	assert normalize_type("function", registry) == "Function"
	assert normalize_type("Bogus", registry) == "any"
	assert normalize_type("$GhostInstance", registry) == "any"


def test_normalize_is_per_leaf(registry):
	assert normalize_type("Bogus[]", registry) == "any[]"
	assert normalize_type("$PostInstance[]", registry) == "$PostInstance[]"
	assert normalize_type("Promise<$UserInstance|Bogus>", registry) == "Promise<$UserInstance|any>"
	assert normalize_type("Promise<>", registry) == "Promise<any>"
	assert normalize_type("...number", registry) == "number"


def test_unknown_parameter_type_degrades_to_any(make_entity, registry):
	service = make_entity(
		"Lookup",
		kind=EntityKind.SERVICE,
		functions=[
			Function(
				name="get",
				params=["key"],
				doc=ParsedDoc(parameters=[DocParameter(name="key", types=["NotARealType"])]),
			)
		],
	)
	resolve_types(service, registry)
	assert service.functions[0].typed_params[0].types == ["any"]
	assert service.imports == []


def test_referenced_entities():
	assert referenced_entities("Promise<$PostInstance[]|$UserInstance>") == ["Post", "User"]
	assert referenced_entities("string") == []


def test_type_parameters_optional_is_sticky():
	func = Function(
		name="find",
		params=["where", "limit", "sort", "...rest"],
		doc=ParsedDoc(
			parameters=[
				DocParameter(name="where", types=["object"]),
				DocParameter(name="limit", types=["number"], optional=True),
				DocParameter(name="sort", types=["string"]),
				DocParameter(name="rest", types=["string"]),
			]
		),
	)
	typed = type_parameters(func)
	assert [(p.name, p.types, p.optional) for p in typed] == [
		("where", ["object"], False),
		("limit", ["number"], True),
		("sort", ["string"], True),
		("...rest", ["string"], True),
	]


def test_type_parameters_without_doc():
	typed = type_parameters(Function(name="f", params=["a", "b"]))
	assert [(p.name, p.types, p.optional) for p in typed] == [("a", ["any"], False), ("b", ["any"], False)]


def test_resolve_function_types_and_imports(make_entity, registry):
	service = make_entity(
		"Mailer",
		kind=EntityKind.SERVICE,
		functions=[
			Function(
				name="notify",
				params=["users", "post"],
				doc=ParsedDoc(
					parameters=[
						DocParameter(name="users", types=["$UserInstance[]"]),
						DocParameter(name="post", types=["$PostInstance", "Unknown"]),
					],
					returns=DocReturns(types=["Promise<$PostInstance|void>"]),
				),
			)
		],
	)
	resolve_types(service, registry)
	func = service.functions[0]
	assert func.typed_params[0].types == ["$UserInstance[]"]
	assert func.typed_params[1].types == ["$PostInstance", "any"]
	assert func.doc.returns.types == ["Promise<$PostInstance|void>"]
	assert service.imports == ["User", "Post"]


def test_resolve_association_rewrites_identity(make_entity, registry, caplog):
	post = make_entity(
		"Post",
		attributes=[
			Attribute(name="author", properties={"model": "user"}),
			Attribute(name="editors", properties={"collection": "User", "via": "edited"}),
			Attribute(name="title", properties={"type": "string"}),
		],
	)
	with caplog.at_level(logging.WARNING):
		resolve_types(post, registry)
	assert post.attributes[0].properties["model"] == "User"
	assert post.attributes[1].properties["collection"] == "User"
	assert post.imports == ["User"]
	assert 'Model identity "User" for attribute "editors" should be all lowercase' in caplog.text
	assert '"user"' not in caplog.text


def test_unknown_model_lists_valid_models(make_entity, registry):
	post = make_entity("Post", attributes=[Attribute(name="ghost", properties={"model": "ghost"})])
	with pytest.raises(StructuralError) as excinfo:
		resolve_types(post, registry)
	message = str(excinfo.value)
	assert 'Failed to resolve model type "ghost"' in message
	assert "Valid models are: Post, User." in message


def test_attribute_without_type_or_association(make_entity, registry):
	post = make_entity("Post", attributes=[Attribute(name="loose", properties={"required": True})])
	with pytest.raises(StructuralError, match="found neither"):
		resolve_types(post, registry)


def test_invalid_attribute_type(make_entity, registry):
	post = make_entity("Post", attributes=[Attribute(name="when", properties={"type": "date"})])
	with pytest.raises(StructuralError, match="string, number, boolean, json, ref"):
		resolve_types(post, registry)


def test_conflicting_attribute_kinds(make_entity, registry):
	post = make_entity("Post", attributes=[Attribute(name="x", properties={"type": "string", "model": "user"})])
	with pytest.raises(StructuralError, match="Conflicting attribute"):
		resolve_types(post, registry)


def test_through_only_attribute_is_accepted(make_entity, registry):
	post = make_entity("Post", attributes=[Attribute(name="likes", properties={"through": "like"})])
	resolve_types(post, registry)
	assert post.imports == []


def test_find_model_is_case_insensitive(registry):
	assert find_model("post", registry).name == "Post"
	assert find_model("POST", registry).name == "Post"
	assert find_model("comment", registry) is None
