# cppcheckdata_reduce/context.py
"""
Classification tables for one pass invocation.

A :class:`ReductionContext` is created empty for every invocation, filled
by the collector in a single traversal, then read by the selector and the
rewriter. Nothing in it survives the invocation: the program changes after
every successful reduction, so the next invocation classifies again from
scratch.

Declarations are keyed by the cppcheck ``varId`` of their declarator.
Plain references share it; member accesses reach it through
``tok.variable.nameToken``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from .errors import SourceSpan

DeclKey = int


@dataclass(frozen=True)
class PointerDecl:
    """A variable or field whose array-unwrapped type is a pointer."""

    key: DeclKey
    name: str
    level: int
    span: SourceSpan = field(default_factory=SourceSpan)
    is_field: bool = False
    record: Optional[str] = None
    array_rank: int = 0

    @property
    def qualified_name(self) -> str:
        if self.record:
            return f"{self.record}::{self.name}"
        return self.name

    def __str__(self) -> str:
        return f"{self.qualified_name} (level {self.level}) at {self.span}"


@dataclass
class ReductionContext:
    """
    The tables of one invocation.

    ``decls_by_level`` buckets keep first-seen order (dict insertion
    order), which is the enumeration order the selector relies on.
    ``valid`` only shrinks; ``disqualified`` remembers removals so that a
    declaration reported after its disqualifying assignment stays out.
    """

    decls_by_level: Dict[int, Dict[DeclKey, PointerDecl]] = field(default_factory=dict)
    valid: Dict[DeclKey, None] = field(default_factory=dict)
    disqualified: Set[DeclKey] = field(default_factory=set)
    addr_taken: Set[DeclKey] = field(default_factory=set)
    visited: Set[DeclKey] = field(default_factory=set)
    max_level: int = 0
    frozen: bool = False

    # ── population (collector) ──────────────────────────────────────────

    def add_decl(self, decl: PointerDecl) -> bool:
        """Register a declaration; returns False if its key was already seen."""
        self._check_mutable()
        if decl.key in self.visited:
            return False
        self.visited.add(decl.key)
        self.decls_by_level.setdefault(decl.level, {})[decl.key] = decl
        if decl.key not in self.disqualified:
            self.valid[decl.key] = None
        if decl.level > self.max_level:
            self.max_level = decl.level
        return True

    def mark_address_taken(self, key: DeclKey) -> None:
        self._check_mutable()
        self.addr_taken.add(key)

    def disqualify(self, key: DeclKey) -> None:
        self._check_mutable()
        self.disqualified.add(key)
        self.valid.pop(key, None)

    def freeze(self) -> None:
        self.frozen = True

    def _check_mutable(self) -> None:
        if self.frozen:
            raise RuntimeError("classification tables are frozen")

    # ── queries ─────────────────────────────────────────────────────────

    def is_valid(self, key: DeclKey) -> bool:
        return key in self.valid

    def is_address_taken(self, key: DeclKey) -> bool:
        return key in self.addr_taken

    def bucket(self, level: int) -> List[PointerDecl]:
        return list(self.decls_by_level.get(level, {}).values())

    def lookup(self, key: DeclKey) -> Optional[PointerDecl]:
        for bucket in self.decls_by_level.values():
            if key in bucket:
                return bucket[key]
        return None

    def iter_decls(self) -> Iterator[PointerDecl]:
        """All collected declarations, deepest level first."""
        for level in sorted(self.decls_by_level, reverse=True):
            yield from self.decls_by_level[level].values()

    def __len__(self) -> int:
        return len(self.visited)
