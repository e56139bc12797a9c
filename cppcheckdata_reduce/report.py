# cppcheckdata_reduce/report.py
"""
Rendering of :class:`TransformationResult` for the command line.

Three formats are supported:

    text   one status line; query mode prints
           ``Available transformation instances: N``
    json   a single JSON object
    sexp   the same data as an S-expression, including the
           classification tables::

               (result (transformation "reduce-pointer-level")
                       (status ok) (counter 1) (instances 3)
                       (target gp 2)
                       (levels (2 gp) (1 p1 p2))
                       (invalid p2) (address-taken p1))
"""

from __future__ import annotations

import json
import textwrap
from typing import Any, Dict, List

import sexpdata
from sexpdata import Symbol

from .context import PointerDecl, ReductionContext
from .transformation import TransformationResult, TransformationStatus

FORMATS = ("text", "json", "sexp")


# ═══════════════════════════════════════════════════════════════════════════
#  TEXT
# ═══════════════════════════════════════════════════════════════════════════

def render_text(result: TransformationResult) -> str:
    if result.query_only:
        return f"Available transformation instances: {result.instance_count}"
    if result.status is TransformationStatus.OK:
        target = result.target
        files = ", ".join(sorted(result.rewritten)) or "no file"
        return (
            f"{result.transformation}: reduced {target.qualified_name} from level "
            f"{target.level} to {target.level - 1} "
            f"(instance {result.counter} of {result.instance_count}; {files})"
        )
    if result.status is TransformationStatus.NO_INSTANCE:
        return (
            f"{result.transformation}: no instance for counter {result.counter} "
            f"({result.instance_count} available); no modification made"
        )
    return f"{result.transformation}: internal error: {result.error}"


def render_candidates(candidates: List[PointerDecl]) -> str:
    """One numbered line per candidate, in selection order."""
    lines = []
    for i, decl in enumerate(candidates, 1):
        kind = "field" if decl.is_field else "variable"
        lines.append(f"{i:4d}  {decl.qualified_name:<24} level {decl.level}  {kind}  {decl.span}")
    return "\n".join(lines)


# ═══════════════════════════════════════════════════════════════════════════
#  JSON
# ═══════════════════════════════════════════════════════════════════════════

def decl_to_dict(decl: PointerDecl) -> Dict[str, Any]:
    return {
        "name": decl.name,
        "qualified_name": decl.qualified_name,
        "level": decl.level,
        "is_field": decl.is_field,
        "record": decl.record,
        "array_rank": decl.array_rank,
        "location": {
            "file": decl.span.file,
            "line": decl.span.line,
            "column": decl.span.column,
        },
    }


def result_to_dict(result: TransformationResult, with_candidates: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "transformation": result.transformation,
        "status": result.status.value,
        "counter": result.counter,
        "instances": result.instance_count,
        "query_only": result.query_only,
        "target": decl_to_dict(result.target) if result.target else None,
        "files": sorted(result.rewritten),
    }
    if result.error is not None:
        data["error"] = result.error.to_json()
    if with_candidates:
        data["candidates"] = [decl_to_dict(d) for d in result.candidates]
    return data


def render_json(result: TransformationResult, with_candidates: bool = False) -> str:
    return json.dumps(result_to_dict(result, with_candidates), indent=2)


# ═══════════════════════════════════════════════════════════════════════════
#  S-EXPRESSIONS
# ═══════════════════════════════════════════════════════════════════════════

def _sym(decl: PointerDecl) -> Symbol:
    return Symbol(decl.qualified_name)


def context_to_sexp(ctx: ReductionContext) -> List[Any]:
    """The classification tables as nested lists ready for ``sexpdata.dumps``."""
    levels: List[Any] = [Symbol("levels")]
    for level in sorted(ctx.decls_by_level, reverse=True):
        levels.append([level] + [_sym(d) for d in ctx.bucket(level)])

    decls = list(ctx.iter_decls())
    invalid = [Symbol("invalid")] + [_sym(d) for d in decls if not ctx.is_valid(d.key)]
    taken = [Symbol("address-taken")] + [_sym(d) for d in decls if ctx.is_address_taken(d.key)]
    return [levels, invalid, taken]


def result_to_sexp(result: TransformationResult, with_candidates: bool = False) -> List[Any]:
    sexp: List[Any] = [
        Symbol("result"),
        [Symbol("transformation"), result.transformation],
        [Symbol("status"), Symbol(result.status.value)],
        [Symbol("counter"), result.counter],
        [Symbol("instances"), result.instance_count],
    ]
    if result.target is not None:
        sexp.append([Symbol("target"), _sym(result.target), result.target.level])
    if result.rewritten:
        sexp.append([Symbol("files")] + sorted(result.rewritten))
    if result.error is not None:
        sexp.append([Symbol("error"), result.error.code.code, result.error.message])
    if with_candidates:
        sexp.append([Symbol("candidates")] + [_sym(d) for d in result.candidates])
    if result.context is not None:
        sexp.extend(context_to_sexp(result.context))
    return sexp


def render_sexp(result: TransformationResult, with_candidates: bool = False) -> str:
    return sexpdata.dumps(result_to_sexp(result, with_candidates))


# ═══════════════════════════════════════════════════════════════════════════
#  DISPATCH
# ═══════════════════════════════════════════════════════════════════════════

def render(result: TransformationResult, fmt: str = "text", with_candidates: bool = False) -> str:
    """Render *result* in *fmt*; ``ValueError`` for an unknown format."""
    if fmt == "text":
        text = render_text(result)
        if with_candidates and result.candidates:
            text = text + "\n" + render_candidates(result.candidates)
        return text
    if fmt == "json":
        return render_json(result, with_candidates)
    if fmt == "sexp":
        return render_sexp(result, with_candidates)
    raise ValueError(f"unknown report format {fmt!r}; expected one of {', '.join(FORMATS)}")


def render_transformations(transformations: Dict[str, str]) -> str:
    """Listing for ``--transformations``."""
    lines = []
    for name, description in transformations.items():
        lines.append(f"{name}:")
        for chunk in textwrap.wrap(description, 72):
            lines.append(f"    {chunk}")
    return "\n".join(lines)
