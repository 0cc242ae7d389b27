import logging
from textwrap import dedent

import pytest

from typegen.errors import ModuleLoadError, StructuralError
from typegen.flatten import flatten_module
from typegen.model import EntityKind


POST_MODEL = dedent(
	"""\
	/**
	 * Post.js
	 */
	module.exports = {

	  attributes: {
	    /**
	     * Headline shown on the front page.
	     */
	    title: { type: 'string', required: true },
	    views: { type: 'number', defaultsTo: 0 },
	    author: { model: 'user' },
	    // not a doc comment
	    tags: { collection: 'tag', via: 'posts' },
	  },

	  /**
	   * Publishes a post.
	   *
	   * @param {string} id - The post id.
	   * @param {boolean} [notify] - Notify followers.
	   * @returns {$PostInstance}
	   */
	  async publish(id, notify, { force } = {}, ...rest) {
	    return null;
	  },

	  count: function (criteria) {
	    return 0;
	  },

	  double: x => x * 2,

	  beforeCreate(values, proceed) {
	    return proceed();
	  },
	};
	"""
)


def flatten(text, kind=EntityKind.MODEL, name="Post"):
	return flatten_module(name, f"api/models/{name}.js", dedent(text), kind)


def test_flatten_model_attributes():
	entity = flatten(POST_MODEL)
	assert [a.name for a in entity.attributes] == ["title", "views", "author", "tags"]
	title, views, author, tags = entity.attributes
	assert title.properties == {"type": "string", "required": True}
	assert title.doc.description == "Headline shown on the front page."
	assert views.properties == {"type": "number", "defaultsTo": 0}
	assert author.properties == {"model": "user"}
	assert author.doc is None
	assert tags.properties == {"collection": "tag", "via": "posts"}
	assert tags.doc is None


def test_flatten_model_functions(caplog):
	with caplog.at_level(logging.WARNING):
		entity = flatten(POST_MODEL)

	funcs = {f.name: f for f in entity.functions}
	assert list(funcs) == ["publish", "count", "double", "beforeCreate"]

	publish = funcs["publish"]
	assert publish.is_async is True
	# destructured parameters are dropped, rest parameters keep their marker
	assert publish.params == ["id", "notify", "...rest"]
	assert [p.name for p in publish.doc.parameters] == ["id", "notify"]
	assert publish.doc.returns.types == ["$PostInstance"]

	assert funcs["count"].params == ["criteria"]
	assert funcs["count"].is_async is False
	assert funcs["double"].params == ["x"]
	assert funcs["beforeCreate"].doc is None
	assert 'Found method "count" defined as property' in caplog.text


def test_missing_exports_is_soft_failure(caplog):
	with caplog.at_level(logging.WARNING):
		entity = flatten("const helper = () => 1;\n", kind=EntityKind.SERVICE, name="Helper")
	assert entity.attributes == []
	assert entity.functions == []
	assert "No module.exports assignment found" in caplog.text


def test_shorthand_attributes_are_skipped(caplog):
	source = """
	const attributes = { name: { type: 'string' } };
	module.exports = { attributes, hello() {} };
	"""
	with caplog.at_level(logging.WARNING):
		entity = flatten(source)
	assert entity.attributes == []
	assert [f.name for f in entity.functions] == ["hello"]
	assert "shorthand attributes key" in caplog.text


def test_attributes_must_be_object(caplog):
	source = """
	const shared = {};
	module.exports = { attributes: shared };
	"""
	with caplog.at_level(logging.WARNING):
		entity = flatten(source)
	assert entity.attributes == []
	assert "expected an object expression" in caplog.text


def test_non_object_attribute_is_skipped(caplog):
	source = """
	module.exports = {
	  attributes: {
	    name: 'string',
	    age: { type: 'number' },
	  },
	};
	"""
	with caplog.at_level(logging.WARNING):
		entity = flatten(source)
	assert [a.name for a in entity.attributes] == ["age"]
	assert 'Found invalid attribute "name"' in caplog.text


def test_duplicate_attribute_property_keeps_later_value(caplog):
	source = """
	module.exports = {
	  attributes: {
	    name: { type: 'string', type: 'number', unique: true, columnType: someVar },
	  },
	};
	"""
	with caplog.at_level(logging.WARNING):
		entity = flatten(source)
	assert entity.attributes[0].properties == {"type": "number", "unique": True}
	assert 'Duplicate key "type"' in caplog.text


def test_duplicate_attribute_identity_is_structural_error():
	source = """
	module.exports = {
	  attributes: {
	    email: { type: 'string' },
	    Email: { type: 'string' },
	  },
	};
	"""
	with pytest.raises(StructuralError) as excinfo:
		flatten(source, name="User")
	message = str(excinfo.value)
	assert '"Email"' in message
	assert '"email"' in message
	assert "api/models/User.js" in message


def test_syntax_error_fails_module_load():
	with pytest.raises(ModuleLoadError):
		flatten("module.exports = { attributes: { name: { type: 'string' }\n")


def test_string_escapes_are_decoded():
	source = r"""
	module.exports = {
	  attributes: {
	    motto: { type: 'string', defaultsTo: 'it\'s ét\xe9\n', 'column\tName': 'x' },
	  },
	};
	"""
	entity = flatten(source)
	assert entity.attributes[0].properties == {
		"type": "string",
		"defaultsTo": "it's été\n",
		"column\tName": "x",
	}


def test_shorthand_attribute_property_is_skipped():
	source = """
	const unique = true;
	module.exports = {
	  attributes: {
	    email: { type: 'string', unique },
	  },
	};
	"""
	entity = flatten(source)
	assert entity.attributes[0].properties == {"type": "string"}


def test_computed_method_key_is_skipped_quietly(caplog):
	source = """
	const key = 'dynamic';
	module.exports = {
	  [key]: function () {},
	  named: function () {},
	};
	"""
	with caplog.at_level(logging.WARNING):
		entity = flatten(source, kind=EntityKind.SERVICE, name="Dyn")
	assert [f.name for f in entity.functions] == ["named"]
	assert '"None"' not in caplog.text
	assert 'Found method "named" defined as property' in caplog.text
