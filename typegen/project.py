"""Project and hook package discovery.

A hook package is an installed npm dependency flagged as a Sails hook
(``sails.isHook``) that itself depends on the marker package. Its
``api/models`` and ``api/services`` are generated alongside the project's own.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from .errors import ProjectError
from .model import HookPackage


logger = logging.getLogger(__name__)

PACKAGE_FILE = "package.json"


def read_package(directory: str) -> Dict[str, Any]:
	path = os.path.join(directory, PACKAGE_FILE)
	if not os.path.isfile(path):
		raise ProjectError(f'Unable to load "{path}"! Ensure that this file is accessible and try again.')
	try:
		with open(path, "r", encoding="utf-8") as fh:
			pkg = json.load(fh)
	except (OSError, ValueError) as e:
		raise ProjectError(f'Unable to load "{path}"! {e}') from e
	if not isinstance(pkg, dict):
		raise ProjectError(f'Unable to load "{path}"! The package is not a JSON object.')
	return pkg


def dependency_names(pkg: Dict[str, Any], key: str) -> List[str]:
	deps = pkg.get(key)
	return list(deps) if isinstance(deps, dict) else []


def load_hook_package(
	project_dir: str,
	dep_name: str,
	marker: str,
	parent: Optional[str] = None,
) -> HookPackage:
	hook_dir = os.path.join(project_dir, "node_modules", dep_name)
	if not os.path.isfile(os.path.join(hook_dir, PACKAGE_FILE)):
		raise ProjectError(
			f'Unable to load hook information for "{dep_name}" from "{hook_dir}"! Ensure that all '
			f"dependencies have been installed via npm/yarn."
		)
	pkg = read_package(hook_dir)
	sails = pkg.get("sails") if isinstance(pkg.get("sails"), dict) else {}
	dependencies = dependency_names(pkg, "dependencies")
	return HookPackage(
		name=pkg.get("name") or dep_name,
		path=hook_dir,
		hook_name=sails.get("hookName") or pkg.get("name"),
		is_hook=bool(sails.get("isHook")),
		is_type_hook=bool(sails.get("isHook")) and marker in dependencies,
		dependencies=dependencies,
		dev_dependencies=dependency_names(pkg, "devDependencies"),
		parent=parent,
	)


def find_hooks(project_dir: str, names: List[str], marker: str, parent: Optional[str] = None) -> List[HookPackage]:
	hooks = [load_hook_package(project_dir, name, marker, parent) for name in names]
	return [hook for hook in hooks if hook.is_type_hook]


def check_hook_issues(hooks: List[HookPackage], marker: str) -> None:
	"""Reject type hooks installed as normal dependencies of other hooks, warn about missing ones."""
	installed = {hook.name for hook in hooks}
	for hook in hooks:
		for dep in hook.dependencies:
			try:
				nested = load_hook_package(hook.path, dep, marker, parent=hook.name)
			except ProjectError:
				# hoisted or not installed under the hook; nothing to check there
				continue
			if nested.is_type_hook:
				raise ProjectError(
					f'Found a type hook ({nested.name}) within dependencies of subhook "{hook.name}". '
					f"Please install all type hooks as devDependencies."
				)

		for dep in hook.dev_dependencies:
			if ("hook-" in dep or "-hook" in dep) and dep not in installed:
				logger.warning(
					'Imported hook "%s" contains a reference to potential hook "%s", though %s has not been '
					"installed in the main package's devDependencies.",
					hook.name,
					dep,
					dep,
				)


def discover_project(root: str, marker: str, include_hooks: bool = True) -> Tuple[Dict[str, Any], List[HookPackage]]:
	"""Read the project's package.json and locate its type hooks."""
	pkg = read_package(root)
	dependencies = dependency_names(pkg, "dependencies")
	dev_dependencies = dependency_names(pkg, "devDependencies")
	if "sails" not in dependencies and "sails" not in dev_dependencies:
		logger.warning(
			"The active project (%s) has no sails dependency listed! It is recommended that you run "
			"`npm install sails --save`, so this project may function without a global sails installation.",
			pkg.get("name"),
		)
	if not include_hooks:
		return pkg, []

	hooks = find_hooks(root, dependencies, marker)
	if hooks:
		raise ProjectError(
			f'Found type hook "{hooks[0].name}" within package dependencies. Please install all type hooks '
			f"as devDependencies instead."
		)
	dev_hooks = find_hooks(root, dev_dependencies, marker)
	check_hook_issues(dev_hooks, marker)
	return pkg, dev_hooks
