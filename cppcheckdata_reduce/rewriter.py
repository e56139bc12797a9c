# cppcheckdata_reduce/rewriter.py
"""
Rewrite phase of the reduce-pointer-level pass.

Given the selected declaration ``D`` of level ``L``, a second walk over the
token list records the edits that turn ``D`` into a level ``L-1``
declaration and keep every dependent expression well typed:

    ┌──────────────────────────┬──────────────────────────────────────┐
    │  site                    │  edit                                │
    ├──────────────────────────┼──────────────────────────────────────┤
    │  T **d                   │  T *d                                │
    │  T **d = E               │  T *d = narrow(E)                    │
    │  { .d = E } of D's record│  { .d = narrow(E) }                  │
    │  *d                      │  d                                   │
    │  d[i]                    │  d                                   │
    │  d->m        (L == 1)    │  d.m                                 │
    │  d = E                   │  d = narrow(E)                       │
    │  d += n, d++, &d         │  unchanged                           │
    │  any other use of d      │  &d                                  │
    └──────────────────────────┴──────────────────────────────────────┘

``narrow(E)`` turns a level ``L`` value into a level ``L-1`` value:
``&x`` becomes ``x``, ``0`` stays, anything else is dereferenced. A
``void *`` value is dereferenced through a cast to the declared type,
``*(T **)malloc(n)``.

For arrays of pointers the same table applies to the element expression
``d[i]..[k]`` with all array subscripts present; a use that lets the array
decay is left alone.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, List, Optional, Set, Tuple

from .ast_helper import (
    Token,
    array_rank,
    decl_key,
    declarator_initializer,
    declarator_stars,
    expr_bounds,
    find_range_root,
    is_address_of,
    is_arrow,
    is_assignment,
    is_declarator_name,
    is_dereference,
    is_designator,
    is_increment_decrement,
    is_member_access,
    is_null_constant,
    is_postfix_or_primary,
    is_record_scope,
    is_split_declaration_name,
    is_subscript,
    tok_link,
    tok_next,
    tok_op1,
    tok_op2,
    tok_parent,
    tok_source_text,
    tok_str,
    tok_value_type,
    tok_variable,
)
from .context import PointerDecl
from .errors import (
    InvariantViolation,
    ReduceErrorCodes,
    RewriteError,
    SourceSpan,
)
from .source_rewriter import SourceRewriter

logger = logging.getLogger(__name__)

Range = Tuple[Token, Token]


class PointerLevelRewriter:
    """Records the edits for one selected declaration."""

    def __init__(self, cfg: Any, target: PointerDecl, edits: SourceRewriter) -> None:
        self.cfg = cfg
        self.target = target
        self.edits = edits
        self._record_scope: Any = None
        self._type_text: Optional[str] = None
        self._rewritten_inits: Set[int] = set()

    def rewrite(self) -> None:
        key = self.target.key
        declarators = 0
        for tok in getattr(self.cfg, "tokenlist", None) or []:
            if decl_key(tok) != key:
                continue
            if is_declarator_name(tok):
                self.rewrite_declarator(tok)
                declarators += 1
            elif is_designator(tok) or is_split_declaration_name(tok):
                continue
            else:
                self.rewrite_use(tok)

        if declarators == 0:
            raise InvariantViolation(
                f"no declarator found for {self.target.qualified_name}",
                code=ReduceErrorCodes.NO_POINTER_DECLARATOR,
                span=self.target.span,
            )

        if self.target.is_field:
            self.rewrite_record_initializers()

    # ═══════════════════════════════════════════════════════════════════
    #  DECLARATORS
    # ═══════════════════════════════════════════════════════════════════

    def rewrite_declarator(self, name_tok: Token) -> None:
        star = next(declarator_stars(name_tok), None)
        if star is None:
            raise InvariantViolation(
                f"{tok_str(name_tok)!r} has no pointer declarator to remove",
                code=ReduceErrorCodes.NO_POINTER_DECLARATOR,
                span=SourceSpan.from_token(name_tok),
            )
        self.edits.remove(star)

        if self._type_text is None:
            self._type_text = _pointer_type_text(name_tok, self.target.level)
        if self.target.is_field and self._record_scope is None:
            self._record_scope = getattr(tok_variable(name_tok), "scope", None)

        init = declarator_initializer(name_tok)
        if init is not None:
            self.narrow_initializer(init)

    def narrow_initializer(self, start: Token) -> None:
        """Narrow the initializer that begins at *start*, element-wise for braces."""
        if tok_str(start) != '{':
            first, last = _expression_range(start)
            self.narrow_range(first, last)
            return
        for first, last in self._elements(start):
            _, first = _strip_designator(first, last)
            if tok_str(first) == '{':
                self.narrow_initializer(first)
            else:
                self.narrow_range(first, last)

    # ═══════════════════════════════════════════════════════════════════
    #  USES
    # ═══════════════════════════════════════════════════════════════════

    def rewrite_use(self, tok: Token) -> None:
        node = tok
        parent = tok_parent(tok)
        if is_member_access(parent) and tok_op2(parent) is tok:
            node = parent
        elif self.target.is_field:
            logger.debug("member %r outside member access left unchanged", tok_str(tok))
            return

        for _ in range(self.target.array_rank):
            parent = tok_parent(node)
            if not (is_subscript(parent) and tok_op1(parent) is node):
                logger.debug(
                    "decayed use of array %s at %s left unchanged",
                    self.target.name, SourceSpan.from_token(tok),
                )
                return
            node = parent

        parent = tok_parent(node)
        if is_dereference(parent):
            self.edits.remove(parent)
        elif is_subscript(parent) and tok_op1(parent) is node:
            self.edits.remove_range(parent, _require_link(parent))
        elif is_arrow(parent) and tok_op1(parent) is node:
            if self.target.level != 1:
                raise RewriteError(
                    f"'->' applied to {self.target.name} of level {self.target.level}",
                    code=ReduceErrorCodes.UNEXPECTED_SHAPE,
                    span=SourceSpan.from_token(parent),
                )
            self.edits.replace(parent, '.')
        elif is_assignment(parent) and tok_op1(parent) is node:
            if tok_str(parent) == '=':
                self.narrow_expression(tok_op2(parent))
        elif is_address_of(parent) or is_increment_decrement(parent):
            logger.debug(
                "%s%s at %s left unchanged",
                tok_str(parent), self.target.name, SourceSpan.from_token(parent),
            )
        else:
            first, _ = expr_bounds(node)
            self.edits.insert_before(first, '&')

    # ═══════════════════════════════════════════════════════════════════
    #  NARROWING VALUES
    # ═══════════════════════════════════════════════════════════════════

    def narrow_expression(self, root: Token) -> None:
        first, last = expr_bounds(root)
        self._narrow(root, first, last)

    def narrow_range(self, first: Token, last: Token) -> None:
        root = find_range_root(first, last)
        if root is None:
            raise RewriteError(
                f"initializer {tok_str(first)!r} has no expression tree",
                code=ReduceErrorCodes.UNEXPECTED_SHAPE,
                span=SourceSpan.from_token(first),
            )
        self._narrow(root, first, last)

    def _narrow(self, root: Token, first: Token, last: Token) -> None:
        if is_address_of(root):
            self.edits.remove(root)
        elif is_null_constant(root):
            return
        elif _is_void_pointer(root) and self._type_text:
            # a void * cannot be dereferenced; go through the declared type
            cast = f"*({self._type_text})"
            if is_postfix_or_primary(root):
                self.edits.insert_before(first, cast)
            else:
                self.edits.insert_before(first, cast + "(")
                self.edits.insert_after(last, ")")
        elif is_postfix_or_primary(root):
            self.edits.insert_before(first, '*')
        else:
            self.edits.insert_before(first, '*(')
            self.edits.insert_after(last, ')')

    # ═══════════════════════════════════════════════════════════════════
    #  RECORD INITIALIZERS
    # ═══════════════════════════════════════════════════════════════════

    def rewrite_record_initializers(self) -> None:
        """Narrow the value each brace initializer supplies for the field."""
        if self._record_scope is None:
            raise InvariantViolation(
                f"field {self.target.qualified_name} has no enclosing record",
                code=ReduceErrorCodes.NO_POINTER_DECLARATOR,
                span=self.target.span,
            )
        for tok in getattr(self.cfg, "tokenlist", None) or []:
            if decl_key(tok) == self.target.key or not is_declarator_name(tok):
                continue
            if next(declarator_stars(tok), None) is not None:
                continue
            scope = _record_type_scope(tok)
            if scope is None:
                continue
            start = declarator_initializer(tok)
            if tok_str(start) != '{':
                continue
            self._rewrite_braced_record(start, scope, array_rank(tok))

    def _rewrite_braced_record(self, open_tok: Token, scope: Any, rank: int) -> None:
        if id(open_tok) in self._rewritten_inits:
            return
        self._rewritten_inits.add(id(open_tok))

        if rank > 0:
            for first, last in self._elements(open_tok):
                _, first = _strip_designator(first, last)
                if tok_str(first) == '{':
                    self._rewrite_braced_record(first, scope, rank - 1)
            return

        members = _members(scope)
        index = 0
        for first, last in self._elements(open_tok):
            designated, first = _strip_designator(first, last)
            if designated is not None:
                index = _member_index(members, designated)
                if index < 0:
                    logger.debug("unknown designator .%s skipped", designated)
                    continue
            if index >= len(members):
                break
            member_tok = getattr(members[index], "nameToken", None)
            if decl_key(member_tok) == self.target.key:
                self.narrow_initializer(first)
            elif tok_str(first) == '{':
                nested = _record_type_scope(member_tok)
                if nested is not None and next(declarator_stars(member_tok), None) is None:
                    self._rewrite_braced_record(first, nested, array_rank(member_tok))
            index += 1

    def _elements(self, open_tok: Token) -> List[Range]:
        return list(_split_braced(open_tok))


# ═══════════════════════════════════════════════════════════════════════
#  TOKEN-RANGE HELPERS
# ═══════════════════════════════════════════════════════════════════════

def _require_link(tok: Token) -> Token:
    link = tok_link(tok)
    if link is None:
        raise RewriteError(
            f"unmatched {tok_str(tok)!r}",
            code=ReduceErrorCodes.UNEXPECTED_SHAPE,
            span=SourceSpan.from_token(tok),
        )
    return link


def _expression_range(start: Token) -> Range:
    """Tokens from *start* up to the next top-level ``;`` ``,`` or closer."""
    tok = start
    last = start
    while tok is not None and tok_str(tok) not in (';', ',', ')', ']', '}'):
        if tok_str(tok) in ('(', '[', '{'):
            tok = _require_link(tok)
        last = tok
        tok = tok_next(tok)
    return start, last


def _split_braced(open_tok: Token) -> Iterator[Range]:
    """Top-level element ranges of a ``{ ... }`` initializer list."""
    close = _require_link(open_tok)
    tok = tok_next(open_tok)
    first: Optional[Token] = None
    last: Optional[Token] = None
    while tok is not None and tok is not close:
        if tok_str(tok) == ',':
            if first is not None:
                yield first, last
            first = last = None
            tok = tok_next(tok)
            continue
        if first is None:
            first = tok
        if tok_str(tok) in ('(', '[', '{'):
            tok = _require_link(tok)
        last = tok
        tok = tok_next(tok)
    if first is not None:
        yield first, last


def _strip_designator(first: Token, last: Token) -> Tuple[Optional[str], Token]:
    """
    Split ``.name = value`` into ``("name", value_start)``; an array
    designator ``[i] = value`` gives ``(None, value_start)``.
    """
    if first is last:
        return None, first
    if tok_str(first) == '.':
        name = tok_next(first)
        if tok_str(tok_next(name)) == '=':
            return tok_str(name), tok_next(tok_next(name))
    elif tok_str(first) == '[':
        eq = tok_next(tok_link(first))
        if tok_str(eq) == '=':
            return None, tok_next(eq)
    return None, first


def _members(scope: Any) -> List[Any]:
    seen = set()
    members = []
    for var in getattr(scope, "varlist", None) or []:
        name_tok = getattr(var, "nameToken", None)
        key = (decl_key(name_tok) if name_tok is not None else 0) or id(var)
        if key in seen:
            continue
        seen.add(key)
        members.append(var)
    return members


def _member_index(members: List[Any], name: str) -> int:
    for i, var in enumerate(members):
        if tok_str(getattr(var, "nameToken", None)) == name:
            return i
    return -1


def _record_type_scope(name_tok: Token) -> Optional[Any]:
    """The struct/union scope a declarator's (element) type refers to."""
    vt = tok_value_type(name_tok)
    scope = getattr(vt, "typeScope", None) if vt is not None else None
    if is_record_scope(scope):
        return scope
    return None


_STORAGE_WORDS = frozenset(("static", "extern", "register", "auto", "inline", "typedef"))


def _is_void_pointer(root: Token) -> bool:
    vt = tok_value_type(root)
    return getattr(vt, "type", None) == "void" and (getattr(vt, "pointer", 0) or 0) >= 1


def _pointer_type_text(name_tok: Token, level: int) -> Optional[str]:
    """
    Spelling of the level-*level* type declared for *name_tok*, as written
    in a cast: ``const char **`` for ``static const char **p``.

    ``None`` when the declarator wraps the name in parentheses or the
    variable has no ``typeStartToken``.
    """
    if tok_str(tok_next(name_tok)) in ('(', ')'):
        return None
    tok = getattr(tok_variable(name_tok), "typeStartToken", None)
    words = []
    while tok is not None and tok is not name_tok:
        s = tok_str(tok)
        if s in ('*', ',', ';', '(', '[', '=', '{') or decl_key(tok):
            break
        if s not in _STORAGE_WORDS:
            words.append(tok_source_text(tok))
        tok = tok_next(tok)
    if not words:
        return None
    return " ".join(words) + " " + "*" * level
