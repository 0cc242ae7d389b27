"""Typegen package for generating TypeScript declarations from Sails models and services.

Modules:
- fs_scan.py: Locating model/service source modules of a project.
- project.py: package.json and type hook discovery.
- flatten.py: JavaScript parsing and extraction of attributes and methods.
- jsdoc.py: Parsing and re-generation of JSDoc blocks.
- resolve.py: Type validation and cross-entity reference resolution.
- synthesize.py: Standalone/linked declaration output and the output tree.
- pipeline.py: The end-to-end generation run.
- model.py: Data structures shared by all stages.
- config.py: Runtime configuration of a run.
- errors.py: Fatal error types.
- console.py: Rich logging setup for the command line.
- summarize.py: Deterministic textual summaries of a run.
"""

__all__ = [
	"fs_scan",
	"project",
	"flatten",
	"jsdoc",
	"resolve",
	"synthesize",
	"pipeline",
	"model",
	"config",
	"errors",
	"console",
	"summarize",
]
