# cppcheckdata_reduce/transformation.py
"""
Transformation registry and the reduce-pointer-level pass driver.

A transformation is invoked once per step of an outer reduction loop with
a 1-based counter choosing which instance to transform. Every invocation
re-analyses the program from scratch::

    pass_ = ReducePointerLevel()
    result = pass_.run(cfg, counter=1)
    if result.status is TransformationStatus.OK:
        for path, text in result.rewritten.items():
            ...

``run(cfg, query_only=True)`` only counts the instances, which tells the
driver the valid range of the counter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple, Type

from .collector import VA_ARG_FIELDS, PointerLevelCollector
from .context import PointerDecl, ReductionContext
from .errors import (
    InternalError,
    ReduceError,
    ReduceErrorCodes,
    UsageError,
)
from .frontend import SourceLoader
from .rewriter import PointerLevelRewriter
from .selector import list_candidates, select_candidate
from .source_rewriter import SourceRewriter

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class PassConfig:
    """Tuning knobs for a pass invocation."""

    excluded_fields: Tuple[str, ...] = VA_ARG_FIELDS
    include_locals: bool = True
    include_fields: bool = True
    encoding: str = "utf-8"
    source_roots: Tuple[str, ...] = ()

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if not self.include_locals and not self.include_fields:
            warnings.append("locals and fields both excluded; only globals are candidates")
        for name in self.excluded_fields:
            if not name.isidentifier():
                warnings.append(f"excluded field {name!r} is not an identifier")
        return warnings


# ═══════════════════════════════════════════════════════════════════════════
#  RESULTS
# ═══════════════════════════════════════════════════════════════════════════

class TransformationStatus(Enum):
    OK = "ok"
    NO_INSTANCE = "no-instance"
    INTERNAL_ERROR = "internal-error"


@dataclass
class TransformationResult:
    """What one invocation did (or why it did nothing)."""

    transformation: str
    status: TransformationStatus
    counter: int
    instance_count: int = 0
    query_only: bool = False
    target: Optional[PointerDecl] = None
    candidates: List[PointerDecl] = field(default_factory=list)
    rewritten: Dict[str, str] = field(default_factory=dict)
    error: Optional[ReduceError] = None
    context: Optional[ReductionContext] = None

    @property
    def ok(self) -> bool:
        return self.status is TransformationStatus.OK


# ═══════════════════════════════════════════════════════════════════════════
#  REGISTRY
# ═══════════════════════════════════════════════════════════════════════════

_REGISTRY: Dict[str, Type["Transformation"]] = {}


def register_transformation(name: str, description: str) -> Callable:
    """Class decorator registering a transformation under *name*."""
    def decorate(cls: Type["Transformation"]) -> Type["Transformation"]:
        if name in _REGISTRY:
            raise ValueError(f"transformation {name!r} registered twice")
        cls.name = name
        cls.description = description
        _REGISTRY[name] = cls
        return cls
    return decorate


def get_transformation(name: str) -> Type["Transformation"]:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise UsageError(
            f"unknown transformation {name!r}; available: "
            + ", ".join(sorted(_REGISTRY)),
            code=ReduceErrorCodes.UNKNOWN_TRANSFORMATION,
        ) from None


def available_transformations() -> Dict[str, str]:
    """Name → description of every registered transformation."""
    return {name: cls.description for name, cls in sorted(_REGISTRY.items())}


class Transformation(ABC):
    """Base class of the passes the CLI can drive."""

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""

    def __init__(
        self,
        config: Optional[PassConfig] = None,
        loader: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.config = config or PassConfig()
        for w in self.config.validate():
            logger.warning("PassConfig: %s", w)
        self.loader = loader or SourceLoader(
            roots=self.config.source_roots, encoding=self.config.encoding,
        )

    @abstractmethod
    def run(self, cfg: Any, counter: int = 1, query_only: bool = False) -> TransformationResult:
        """Analyse *cfg* and transform instance *counter*."""


# ═══════════════════════════════════════════════════════════════════════════
#  REDUCE POINTER LEVEL
# ═══════════════════════════════════════════════════════════════════════════

_DESCRIPTION = (
    "Reduce the pointer indirection level of one global/local variable or "
    "struct/union field. Valid declarations are ordered by indirection "
    "level and the deepest ones are chosen first, so a chosen declaration "
    "at the maximum level may be address-taken. Below the maximum level a "
    "declaration is ineligible if it is address-taken, or if it is the "
    "left-hand side of a pointer assignment whose right-hand side is not a "
    "plain reference, a unary expression or an indexing expression."
)


@register_transformation("reduce-pointer-level", _DESCRIPTION)
class ReducePointerLevel(Transformation):
    """Drops one level of indirection from the selected declaration."""

    def analyze(self, cfg: Any) -> ReductionContext:
        collector = PointerLevelCollector(
            excluded_fields=self.config.excluded_fields,
            include_locals=self.config.include_locals,
            include_fields=self.config.include_fields,
        )
        return collector.collect(cfg)

    def run(self, cfg: Any, counter: int = 1, query_only: bool = False) -> TransformationResult:
        result = TransformationResult(
            transformation=self.name,
            status=TransformationStatus.OK,
            counter=counter,
            query_only=query_only,
        )
        try:
            ctx = self.analyze(cfg)
            result.context = ctx
            result.candidates = list_candidates(ctx)
            result.instance_count = len(result.candidates)
            if query_only:
                logger.info("%d instance(s) available", result.instance_count)
                return result

            selection = select_candidate(ctx, counter)
            if selection.target is None:
                result.status = TransformationStatus.NO_INSTANCE
                return result
            result.target = selection.target

            edits = SourceRewriter(self.loader)
            PointerLevelRewriter(cfg, selection.target, edits).rewrite()
            result.rewritten = edits.apply()
        except InternalError as exc:
            logger.error("%s: %s", self.name, exc)
            result.status = TransformationStatus.INTERNAL_ERROR
            result.error = exc
            result.rewritten = {}
        return result
