"""
cppcheckdata_reduce — Program-Reduction Passes over Cppcheck Dump Files
======================================================================

This package implements test-case reduction transformations in the style
of C-Reduce's ``clang_delta``, driven by the token lists, ASTs and symbol
tables that ``cppcheck --dump`` produces.

Each invocation of a pass analyses one translation unit, chooses one
instance by a 1-based counter and rewrites the source text. An outer
reduction loop calls the pass repeatedly, keeping a rewrite only when the
test case still shows the behaviour being reduced.

Modules
-------
ast_helper
    Null-safe accessors and shape predicates over cppcheck tokens.
context
    Per-invocation classification tables (``ReductionContext``).
collector
    Classification traversal of the reduce-pointer-level pass.
selector
    Deterministic candidate ordering and selection.
rewriter
    Edits that drop one level of indirection from the target.
source_rewriter
    Offset-based text edits anchored on tokens.
transformation
    Pass configuration, results and the transformation registry.
frontend
    Loading dumps, running cppcheck, reading sources.
report
    Text, JSON and S-expression rendering of results.
main
    The ``cppcheck-reduce`` command line.

Quick start
-----------
>>> from cppcheckdata_reduce import ReducePointerLevel, load_dump, select_configuration
>>> cfg = select_configuration(load_dump("prog.c.dump"))
>>> ReducePointerLevel().run(cfg, query_only=True).instance_count  # doctest: +SKIP
3
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import Dict, List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__license__ = "MIT"
__all__: List[str] = []          # populated below

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

# ---------------------------------------------------------------------------
# Re-exported names, by submodule.
# ---------------------------------------------------------------------------

_PUBLIC_MODULES: Dict[str, List[str]] = {
    "errors": [
        "ErrorCode",
        "ErrorPhase",
        "ErrorSeverity",
        "ReduceErrorCodes",
        "SourceSpan",
        "ReduceError",
        "FrontendError",
        "UsageError",
        "InternalError",
        "InvariantViolation",
        "RewriteError",
    ],
    "context": [
        "PointerDecl",
        "ReductionContext",
    ],
    "collector": [
        "PointerLevelCollector",
    ],
    "selector": [
        "Selection",
        "iter_candidates",
        "list_candidates",
        "count_candidates",
        "select_candidate",
    ],
    "source_rewriter": [
        "SourceRewriter",
        "TextEdit",
    ],
    "rewriter": [
        "PointerLevelRewriter",
    ],
    "transformation": [
        "PassConfig",
        "Transformation",
        "TransformationResult",
        "TransformationStatus",
        "ReducePointerLevel",
        "register_transformation",
        "get_transformation",
        "available_transformations",
    ],
    "frontend": [
        "SourceLoader",
        "load_dump",
        "run_cppcheck",
        "select_configuration",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace.

    A missing submodule or name is a packaging defect, so both raise.
    """
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"cppcheckdata_reduce: submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        if not hasattr(mod, name):
            raise AttributeError(
                f"cppcheckdata_reduce.{module_rel_name} does not export '{name}'"
            )
        setattr(current_module, name, getattr(mod, name))
        __all__.append(name)


for _mod_name, _names in _PUBLIC_MODULES.items():
    _import_names(_mod_name, _names)

del _mod_name, _names
