from __future__ import annotations

import os
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from typegen.config import GeneratorConfig
from typegen.errors import TypegenError
from typegen.model import GenerationResult
from typegen.pipeline import generate, prepare


app = FastAPI(title="Sails Typegen")


class GenerateRequest(BaseModel):
	root_path: str
	out_dir: Optional[str] = None
	write_jsconfig: bool = False


class PreviewResponse(BaseModel):
	models: Dict[str, str]
	services: Dict[str, str]


def _config(req: GenerateRequest) -> GeneratorConfig:
	root = os.path.abspath(req.root_path)
	if not os.path.isdir(root):
		raise HTTPException(status_code=400, detail=f"Invalid root_path: {root}")
	out_dir = None
	if req.out_dir is not None:
		# relative to the project, and never outside of it
		out_dir = os.path.realpath(os.path.join(root, req.out_dir))
		real_root = os.path.realpath(root)
		if out_dir == real_root or os.path.commonpath([real_root, out_dir]) != real_root:
			raise HTTPException(status_code=400, detail=f"Invalid out_dir: {req.out_dir}")
	return GeneratorConfig(root=root, out_dir=out_dir, write_jsconfig=req.write_jsconfig)


@app.post("/generate", response_model=GenerationResult)
def generate_declarations(req: GenerateRequest) -> GenerationResult:
	config = _config(req)
	try:
		return generate(config)
	except TypegenError as e:
		raise HTTPException(status_code=422, detail=str(e)) from e


@app.post("/preview", response_model=PreviewResponse)
def preview_declarations(req: GenerateRequest) -> PreviewResponse:
	config = _config(req)
	try:
		models, services = prepare(config)
	except TypegenError as e:
		raise HTTPException(status_code=422, detail=str(e)) from e
	return PreviewResponse(
		models={name: m.declarations.linked or "" for name, m in models.items()},
		services={name: s.declarations.linked or "" for name, s in services.items()},
	)


def create_app() -> FastAPI:
	return app
