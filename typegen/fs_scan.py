from __future__ import annotations

import os
from typing import Dict, List

from .model import EntityKind, SourceFile


SOURCE_DIRS: Dict[EntityKind, str] = {
	EntityKind.MODEL: os.path.join("api", "models"),
	EntityKind.SERVICE: os.path.join("api", "services"),
}
IGNORED_DIRS = {".git", "node_modules", "__pycache__"}
SOURCE_EXTENSION = ".js"


def to_entity_name(file_path: str) -> str:
	return os.path.splitext(os.path.basename(file_path))[0]


def scan_kind(root: str, kind: EntityKind, owner: str = "root project") -> List[SourceFile]:
	base = os.path.join(root, SOURCE_DIRS[kind])
	files: List[SourceFile] = []
	if not os.path.isdir(base):
		return files
	for dirpath, dirnames, filenames in os.walk(base):
		dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
		for filename in sorted(filenames):
			if not filename.endswith(SOURCE_EXTENSION):
				continue
			path = os.path.join(dirpath, filename)
			files.append(
				SourceFile(
					path=path,
					rel_path=os.path.relpath(path, root),
					name=to_entity_name(filename),
					kind=kind,
					owner=owner,
				)
			)
	return files


def scan_sources(root: str, owner: str = "root project") -> List[SourceFile]:
	"""All model and service modules of one project (or hook package)."""
	return scan_kind(root, EntityKind.MODEL, owner) + scan_kind(root, EntityKind.SERVICE, owner)
