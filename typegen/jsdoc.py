"""Parsing and re-generation of JSDoc comment blocks.

Only the subset of JSDoc needed for declaration output is understood:
``@param`` and ``@returns`` are parsed into structured records, every other
tag is kept verbatim so that the block can be written back out.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .model import Annotation, DocParameter, DocReturns, ParsedDoc


DOC_MARKER = "*"
PARAM_TAG = "@param"
RETURNS_TAG = "@returns"
RETURNS_ALIASES = (RETURNS_TAG, "@return")

# line breaks with their indentation and leading "*", folded into one space
_CONTINUATION = re.compile(r"(?:[ \t]*[\r\n][ \t]*\*)+[ \t]*")
# a tag only starts a word, so e-mail addresses stay in the text
_TAG_TOKEN = re.compile(r"(?<!\S)(@[A-Za-z]+)")
_PARAM_VALUE = re.compile(
	r"(?:\{(?P<types>[^{}]*)\})?\s*"
	r"(?P<name>\[[A-Za-z_$][A-Za-z0-9_$]*(?:=[^\]]*)?\]|\[?[A-Za-z_$][A-Za-z0-9_$]*\]?)\s*"
	r"-?\s*(?P<description>.+)?",
	re.DOTALL,
)
_RETURNS_VALUE = re.compile(
	r"(?:\{(?P<types>[^{}]*)\})?\s*-?\s*(?P<description>.+)?",
	re.DOTALL,
)


def split_union(type_text: str) -> List[str]:
	"""Split a type union on ``|`` without descending into ``<...>`` generics."""
	parts: List[str] = []
	current: List[str] = []
	depth = 0
	for ch in type_text:
		if ch == "<":
			depth += 1
		elif ch == ">":
			depth = max(depth - 1, 0)
		if ch == "|" and depth == 0:
			parts.append("".join(current))
			current = []
		else:
			current.append(ch)
	parts.append("".join(current))
	return [p.strip() for p in parts if p.strip()]


def _types(raw: Optional[str]) -> List[str]:
	if raw is None:
		return []
	return split_union(raw)


def _description(raw: Optional[str]) -> Optional[str]:
	if raw is None:
		return None
	return raw.strip() or None


def parse_param(value: Optional[str]) -> Optional[DocParameter]:
	if not value:
		return None
	m = _PARAM_VALUE.match(value)
	if not m:
		return None
	name = m.group("name")
	optional = name.startswith("[")
	if optional:
		name = name.strip("[]").split("=", 1)[0]
	return DocParameter(
		name=name,
		types=_types(m.group("types")),
		description=_description(m.group("description")),
		optional=optional,
	)


def parse_returns(value: Optional[str]) -> DocReturns:
	if not value:
		return DocReturns()
	m = _RETURNS_VALUE.match(value)
	return DocReturns(types=_types(m.group("types")), description=_description(m.group("description")))


def strip_comment_delimiters(comment: str) -> str:
	"""Turn ``/** text */`` into the comment body ``* text``."""
	text = comment.strip()
	if text.startswith("/*"):
		text = text[2:]
	if text.endswith("*/"):
		text = text[:-2]
	return text


def parse_doc(raw: Optional[str]) -> Optional[ParsedDoc]:
	"""Parse a block comment body into a ParsedDoc.

	Returns None when the body is not a doc comment (it has to start with
	the ``*`` marker) or when a tag runs straight into text, as in
	``@type{string}``. Unparsable ``@param`` values are dropped, and only the
	first ``@returns`` is kept.
	"""
	if not isinstance(raw, str) or not raw.startswith(DOC_MARKER):
		return None

	body = _CONTINUATION.sub(" ", raw[len(DOC_MARKER):]).strip()
	fragments = _TAG_TOKEN.split(body)
	doc = ParsedDoc(description=fragments.pop(0).strip())

	while fragments:
		tag = fragments.pop(0)
		following = fragments.pop(0) if fragments else ""
		if following and not following[:1].isspace():
			return None
		# a bare tag is followed directly by the next tag or the end of the block
		value = following.strip() or None

		if tag == PARAM_TAG:
			param = parse_param(value)
			if param is not None:
				doc.parameters.append(param)
		elif tag in RETURNS_ALIASES:
			if doc.returns is None:
				doc.returns = parse_returns(value)
		else:
			doc.annotations.append(Annotation(tag=tag, value=value))

	return doc


def serialize_doc(doc: Optional[ParsedDoc], indent: str = "  ") -> str:
	"""Write a ParsedDoc back out as a ``/** ... */`` block, or "" if it is empty."""
	if doc is None:
		return ""

	stanzas: List[str] = []
	if doc.description.strip():
		stanzas.append(doc.description.strip())

	for param in doc.parameters:
		text = PARAM_TAG
		if param.types:
			text += " {" + "|".join(param.types) + "}"
		text += f" [{param.name}]" if param.optional else f" {param.name}"
		if param.description:
			text += " - " + param.description.strip()
		stanzas.append(text)

	for annotation in doc.annotations:
		text = annotation.tag
		if annotation.value:
			text += " " + annotation.value
		stanzas.append(text)

	if doc.returns is not None:
		text = RETURNS_TAG
		if doc.returns.types:
			text += " {" + "|".join(doc.returns.types) + "}"
		if doc.returns.description:
			text += " " + doc.returns.description.strip()
		stanzas.append(text)

	if not stanzas:
		return ""

	lines = [f"{indent}/**"]
	for i, stanza in enumerate(stanzas):
		if i > 0:
			lines.append(f"{indent} *")
		lines.append(f"{indent} * {stanza}")
	lines.append(f"{indent} */")
	return "\n".join(lines)
