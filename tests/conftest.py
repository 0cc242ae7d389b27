from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

import pytest

from typegen.model import EntityDescriptor, EntityKind


@pytest.fixture
def make_entity():
	def _make(name, kind=EntityKind.MODEL, attributes=(), functions=()):
		area = "models" if kind == EntityKind.MODEL else "services"
		return EntityDescriptor(
			name=name,
			filename=f"api/{area}/{name}.js",
			kind=kind,
			attributes=list(attributes),
			functions=list(functions),
		)

	return _make


@pytest.fixture
def sails_project(tmp_path):
	"""Write a throwaway Sails project: ``files`` maps relative paths to contents."""

	def _make(files: Dict[str, str], package: Optional[dict] = None) -> Path:
		root = tmp_path / "project"
		root.mkdir(exist_ok=True)
		if package is None:
			package = {"name": "blog", "dependencies": {"sails": "^1.5.0"}}
			files = {"node_modules/sails/package.json": json.dumps({"name": "sails"}), **files}
		(root / "package.json").write_text(json.dumps(package))
		for rel, text in files.items():
			path = root / rel
			path.parent.mkdir(parents=True, exist_ok=True)
			path.write_text(text)
		return root

	return _make
