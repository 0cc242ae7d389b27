from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


DEFAULT_OUT_DIR = ".types"


class GeneratorConfig(BaseModel):
	"""
	Runtime configuration for one declaration generation run.
	"""

	root: str = Field(..., description="Root directory of the Sails project.")
	out_dir: Optional[str] = Field(None, description="Output directory, defaults to '<root>/.types'.")
	write_jsconfig: bool = Field(True, description="Write a jsconfig.json into the project root if none exists.")
	include_hooks: bool = Field(True, description="Also generate declarations for installed type hooks.")
	hook_marker: str = Field(
		"marlinspike",
		description="Dependency name that marks an installed Sails hook as a type hook.",
	)
	max_workers: int = Field(8, ge=1, description="Number of modules parsed concurrently.")

	@field_validator("root")
	@classmethod
	def absolute_root(cls, v: str) -> str:
		return os.path.abspath(v)

	@model_validator(mode="after")
	def default_out_dir(self) -> "GeneratorConfig":
		if self.out_dir is None:
			self.out_dir = os.path.join(self.root, DEFAULT_OUT_DIR)
		else:
			self.out_dir = os.path.abspath(self.out_dir)
		return self
