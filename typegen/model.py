from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class EntityKind(str, Enum):
	MODEL = "model"
	SERVICE = "service"


class Annotation(BaseModel):
	tag: str
	value: Optional[str] = None


class DocParameter(BaseModel):
	name: str
	types: List[str] = []
	description: Optional[str] = None
	optional: bool = False


class DocReturns(BaseModel):
	types: List[str] = []
	description: Optional[str] = None


class ParsedDoc(BaseModel):
	description: str = ""
	# every tag other than @param/@returns, in source order
	annotations: List[Annotation] = []
	parameters: List[DocParameter] = []
	returns: Optional[DocReturns] = None

	def find_parameter(self, name: str) -> Optional[DocParameter]:
		for param in self.parameters:
			if param.name == name:
				return param
		return None


class Attribute(BaseModel):
	name: str
	properties: Dict[str, Any] = {}
	doc: Optional[ParsedDoc] = None


class TypedParam(BaseModel):
	name: str
	types: List[str] = ["any"]
	optional: bool = False

	@property
	def is_rest(self) -> bool:
		return self.name.startswith("...")


class Function(BaseModel):
	name: str
	params: List[str] = []
	is_async: bool = False
	doc: Optional[ParsedDoc] = None
	typed_params: List[TypedParam] = []


class Declarations(BaseModel):
	# instance/static are produced by the standalone phase, linked by the linked phase
	instance: Optional[str] = None
	static: Optional[str] = None
	linked: Optional[str] = None


class EntityDescriptor(BaseModel):
	name: str
	filename: str
	kind: EntityKind
	owner: str = "root project"
	attributes: List[Attribute] = []
	functions: List[Function] = []
	imports: List[str] = []
	declarations: Declarations = Field(default_factory=Declarations)

	@property
	def is_model(self) -> bool:
		return self.kind == EntityKind.MODEL

	def add_import(self, name: str) -> None:
		if name not in self.imports:
			self.imports.append(name)

	def describe(self) -> str:
		return f'{self.name} ("{self.filename}")'


Registry = Dict[str, EntityDescriptor]


class SourceFile(BaseModel):
	path: str
	rel_path: str
	name: str
	kind: EntityKind
	owner: str = "root project"


class HookPackage(BaseModel):
	name: str
	path: str
	hook_name: Optional[str] = None
	is_hook: bool = False
	is_type_hook: bool = False
	dependencies: List[str] = []
	dev_dependencies: List[str] = []
	parent: Optional[str] = None


class Summaries(BaseModel):
	global_overview: str
	per_entity: Dict[str, str]


class GenerationResult(BaseModel):
	root: str
	out_dir: str
	models: List[str]
	services: List[str]
	files: List[str]
	summaries: Summaries
