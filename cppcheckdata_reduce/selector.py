# cppcheckdata_reduce/selector.py
"""
Selection phase: map an ordinal onto the ordered candidate sequence.

Candidates are enumerated deepest level first. At the maximum level every
valid declaration is a candidate, address-taken or not; below it,
address-taken declarations are skipped. Choosing the deepest declarations
first means a chosen declaration is never the operand of an ``&`` whose
result some shallower pointer holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from .context import PointerDecl, ReductionContext
from .errors import ReduceErrorCodes, UsageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Outcome of selection: the target (if any) and the candidate count."""

    counter: int
    target: Optional[PointerDecl]
    instance_count: int

    @property
    def exhausted(self) -> bool:
        return self.target is None


def iter_candidates(ctx: ReductionContext) -> Iterator[PointerDecl]:
    """Yield the eligible declarations in selection order."""
    for decl in ctx.bucket(ctx.max_level):
        if ctx.is_valid(decl.key):
            yield decl

    for level in range(ctx.max_level - 1, 0, -1):
        for decl in ctx.bucket(level):
            if ctx.is_valid(decl.key) and not ctx.is_address_taken(decl.key):
                yield decl


def list_candidates(ctx: ReductionContext) -> List[PointerDecl]:
    return list(iter_candidates(ctx))


def count_candidates(ctx: ReductionContext) -> int:
    return sum(1 for _ in iter_candidates(ctx))


def select_candidate(ctx: ReductionContext, counter: int) -> Selection:
    """
    Return the *counter*-th candidate (1-based).

    The whole sequence is always walked so that the candidate count is
    reported alongside the target.
    """
    if counter < 1:
        raise UsageError(
            f"counter must be a positive integer, got {counter}",
            code=ReduceErrorCodes.BAD_COUNTER,
        )

    target = None
    count = 0
    for decl in iter_candidates(ctx):
        count += 1
        if count == counter:
            target = decl

    if target is None:
        logger.info("counter %d exceeds %d candidate(s)", counter, count)
    else:
        logger.info("selected %s as candidate %d of %d", target, counter, count)
    return Selection(counter=counter, target=target, instance_count=count)
