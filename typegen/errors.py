from __future__ import annotations


class TypegenError(Exception):
	"""Base class for every fatal error raised while generating declarations."""


class StructuralError(TypegenError):
	"""A model or service definition that cannot be turned into declarations."""


class ModuleLoadError(TypegenError):
	"""A source module that could not be read or parsed."""


class ProjectError(TypegenError):
	"""The project (or one of its hook packages) could not be discovered."""
