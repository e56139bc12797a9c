#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cppcheckdata_reduce/ast_helper.py
═════════════════════════════════

Token and AST utilities for the reduction passes.

The passes read the raw ``cppcheckdata.Token`` objects of a dump
configuration. This module wraps the handful of queries they need:

    ┌─────────────────────────────────────────────────────────────────┐
    │  Safe accessors        tok_str, tok_op1, tok_parent, ...        │
    │  AST predicates        is_address_of, is_dereference, ...       │
    │  Expression shape      skip_casts, expr_bounds, is_postfix_...  │
    │  Declarator queries    declarator_stars, array_rank, ...        │
    └─────────────────────────────────────────────────────────────────┘

Cppcheck AST conventions relied on
──────────────────────────────────
* A unary operator has ``astOperand1`` and no ``astOperand2``.
* Member access (``.`` and ``->``) is a ``.`` token; the arrow form keeps
  ``originalName == "->"``. ``astOperand2`` is the member name token.
* Indexing is a ``[`` token with the base in ``astOperand1``.
* A call is a ``(`` token with the callee in ``astOperand1``; a cast is a
  ``(`` token flagged ``isCast`` with the operand in ``astOperand1``.
* Redundant parentheses are not AST nodes.

None of the functions here modify tokens.
"""

from __future__ import annotations

from typing import Any, FrozenSet, Iterator, Optional, Tuple

# We use Any for Token to avoid hard dependency on cppcheckdata module
# at import time.
Token = Any


# ═══════════════════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

ASSIGNMENT_OPS: FrozenSet[str] = frozenset({
    '=', '+=', '-=', '*=', '/=', '%=',
    '&=', '|=', '^=', '<<=', '>>=',
})

# Operators that form a unary expression when they have a single operand.
UNARY_OPS: FrozenSet[str] = frozenset({
    '&', '*', '+', '-', '~', '!', '++', '--',
})

# Qualifiers that may sit between a pointer declarator and the name.
POINTER_QUALIFIERS: FrozenSet[str] = frozenset({
    'const', 'volatile', 'restrict', '__restrict', '__restrict__',
})

# Words that end a statement prefix rather than a type, so a name after
# them is a use and not a redeclaration.
STATEMENT_KEYWORDS: FrozenSet[str] = frozenset({
    'return', 'else', 'case', 'goto', 'do', 'sizeof', 'throw',
})

RECORD_SCOPE_TYPES: FrozenSet[str] = frozenset({
    'Struct', 'Union', 'Class',
})


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 — SAFE ACCESSORS
# ═══════════════════════════════════════════════════════════════════════════

def tok_str(tok: Token) -> str:
    """Return the token's string value, or ``""`` for ``None``."""
    if tok is None:
        return ""
    return getattr(tok, "str", "") or ""


def tok_op1(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astOperand1", None)


def tok_op2(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astOperand2", None)


def tok_parent(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astParent", None)


def tok_var_id(tok: Token) -> int:
    """Return the variable ID of a token, or 0 if it is not a variable reference."""
    if tok is None:
        return 0
    vid = getattr(tok, "varId", 0)
    return int(vid) if vid else 0


def tok_variable(tok: Token) -> Optional[Any]:
    if tok is None:
        return None
    return getattr(tok, "variable", None)


def decl_key(tok: Token) -> int:
    """
    Variable ID of the declaration a name token refers to.

    Cppcheck gives every ``base.member`` access its own varId; only
    ``tok.variable`` leads back to the member, whose declarator carries the
    varId shared by all declarations of the field.
    """
    var = tok_variable(tok)
    key = tok_var_id(getattr(var, "nameToken", None)) if var is not None else 0
    return key or tok_var_id(tok)


def tok_value_type(tok: Token) -> Optional[Any]:
    if tok is None:
        return None
    return getattr(tok, "valueType", None)


def tok_link(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "link", None)


def tok_next(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "next", None)


def tok_previous(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "previous", None)


def tok_file(tok: Token) -> str:
    if tok is None:
        return "<unknown>"
    return getattr(tok, "file", "<unknown>") or "<unknown>"


def tok_line(tok: Token) -> int:
    if tok is None:
        return 0
    return int(getattr(tok, "linenr", 0) or 0)


def tok_column(tok: Token) -> int:
    if tok is None:
        return 0
    return int(getattr(tok, "column", 0) or 0)


def tok_pos(tok: Token) -> Tuple[str, int, int]:
    """Sort key placing tokens in source order."""
    return (tok_file(tok), tok_line(tok), tok_column(tok))


def tok_source_text(tok: Token) -> str:
    """
    The spelling of a token in the source file.

    Cppcheck normalises some tokens (``->`` is stored as ``.``); the
    original spelling is kept in ``originalName``.
    """
    original = getattr(tok, "originalName", None) if tok is not None else None
    return original or tok_str(tok)


def pointer_level(tok: Token) -> int:
    """Pointer depth of an expression according to its ValueType (0 if unknown)."""
    vt = tok_value_type(tok)
    if vt is None:
        return 0
    return int(getattr(vt, "pointer", 0) or 0)


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 — AST TRAVERSAL
# ═══════════════════════════════════════════════════════════════════════════

def iter_ast_preorder(root: Token) -> Iterator[Token]:
    """Iterate over AST nodes in pre-order (root, left, right)."""
    if root is None:
        return
    stack = [root]
    seen = set()
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        op2 = tok_op2(node)
        op1 = tok_op1(node)
        if op2 is not None:
            stack.append(op2)
        if op1 is not None:
            stack.append(op1)


def has_ast(tok: Token) -> bool:
    """True if the token takes part in an AST (has a parent or operands)."""
    return (
        tok_parent(tok) is not None
        or tok_op1(tok) is not None
        or tok_op2(tok) is not None
    )


# ═══════════════════════════════════════════════════════════════════════════
#  PART 3 — AST PREDICATES
# ═══════════════════════════════════════════════════════════════════════════

def is_unary_op(tok: Token) -> bool:
    """A unary operator has astOperand1 but not astOperand2."""
    if tok is None:
        return False
    return tok_op1(tok) is not None and tok_op2(tok) is None


def is_binary_op(tok: Token) -> bool:
    if tok is None:
        return False
    return tok_op1(tok) is not None and tok_op2(tok) is not None


def is_identifier(tok: Token) -> bool:
    if tok is None:
        return False
    return bool(getattr(tok, "isName", False))


def is_number(tok: Token) -> bool:
    if tok is None:
        return False
    return bool(getattr(tok, "isNumber", False))


def is_null_constant(tok: Token) -> bool:
    """The literal ``0`` converts to a pointer of any depth."""
    return is_number(tok) and tok_str(tok) in ("0", "0L", "0U", "0UL")


def is_cast(tok: Token) -> bool:
    if tok is None:
        return False
    return bool(getattr(tok, "isCast", False))


def is_assignment(tok: Token) -> bool:
    """Assignment including compound forms; requires both operands."""
    if tok is None:
        return False
    if not (bool(getattr(tok, "isAssignmentOp", False)) or tok_str(tok) in ASSIGNMENT_OPS):
        return False
    return is_binary_op(tok)


def is_increment_decrement(tok: Token) -> bool:
    return tok_str(tok) in ('++', '--')


def is_dereference(tok: Token) -> bool:
    """Unary ``*``, as opposed to multiplication."""
    return tok_str(tok) == '*' and is_unary_op(tok)


def is_address_of(tok: Token) -> bool:
    """Unary ``&``, as opposed to bitwise AND."""
    return tok_str(tok) == '&' and is_unary_op(tok)


def is_unary_expression(tok: Token) -> bool:
    """Prefix or postfix unary operator expression (``*p``, ``&x``, ``p++``...)."""
    return tok_str(tok) in UNARY_OPS and is_unary_op(tok)


def is_subscript(tok: Token) -> bool:
    return tok_str(tok) == '[' and tok_op1(tok) is not None


def is_member_access(tok: Token) -> bool:
    """``.`` or ``->`` with a member operand."""
    return tok_str(tok) in ('.', '->') and tok_op2(tok) is not None


def is_arrow(tok: Token) -> bool:
    return is_member_access(tok) and tok_source_text(tok) == '->'


def is_function_call(tok: Token) -> bool:
    if tok_str(tok) != '(':
        return False
    if tok_op1(tok) is None:
        return False
    return not is_cast(tok)


def is_declaration_reference(tok: Token) -> bool:
    """
    A bare name that resolves to a declaration: a variable, a function
    designator or an enumerator.
    """
    if not is_identifier(tok) or has_operands(tok):
        return False
    return bool(
        tok_var_id(tok)
        or tok_variable(tok) is not None
        or getattr(tok, "function", None) is not None
        or getattr(tok, "isEnumerator", False)
    )


def has_operands(tok: Token) -> bool:
    return tok_op1(tok) is not None or tok_op2(tok) is not None


def is_postfix_or_primary(tok: Token) -> bool:
    """
    True if a prefix operator can be written directly in front of the
    expression rooted at *tok* without changing how it parses.
    """
    if tok is None:
        return False
    if not has_operands(tok):
        return is_identifier(tok) or is_number(tok)
    if is_subscript(tok) or is_member_access(tok) or is_function_call(tok):
        return True
    return is_unary_expression(tok)


# ═══════════════════════════════════════════════════════════════════════════
#  PART 4 — EXPRESSION SHAPE
# ═══════════════════════════════════════════════════════════════════════════

def skip_casts(tok: Token) -> Optional[Token]:
    """Strip casts; parentheses never appear as AST nodes."""
    while is_cast(tok):
        tok = tok_op1(tok)
    return tok


def expr_bounds(root: Token) -> Tuple[Token, Token]:
    """
    First and last source token of the expression rooted at *root*.

    Closing brackets of calls and subscripts are included through their
    ``link``; enclosing redundant parentheses are included too.
    """
    nodes = list(iter_ast_preorder(root))
    first = min(nodes, key=tok_pos)
    last = max(nodes, key=tok_pos)
    for node in nodes:
        link = tok_link(node)
        if link is not None and tok_pos(link) > tok_pos(last):
            last = link
    while True:
        before = tok_previous(first)
        after = tok_next(last)
        if (
            tok_str(before) == '('
            and after is not None
            and tok_link(before) is after
            and not has_ast(before)
        ):
            first, last = before, after
            continue
        return first, last


def iter_tokens(start: Token, end: Token) -> Iterator[Token]:
    """Iterate the token list from *start* to *end*, both inclusive."""
    tok = start
    while tok is not None:
        yield tok
        if tok is end:
            return
        tok = tok_next(tok)


def find_range_root(start: Token, end: Token) -> Optional[Token]:
    """
    Topmost AST node of the expression spelled by the tokens *start*..*end*.

    Climbs from the first token taking part in an AST for as long as the
    parent stays inside the range.
    """
    inside = {id(t) for t in iter_tokens(start, end)}
    for tok in iter_tokens(start, end):
        if not has_ast(tok):
            continue
        node = tok
        while tok_parent(node) is not None and id(tok_parent(node)) in inside:
            node = tok_parent(node)
        return node
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  PART 5 — DECLARATOR QUERIES
# ═══════════════════════════════════════════════════════════════════════════

def declarator_stars(name_tok: Token) -> Iterator[Token]:
    """
    The ``*`` tokens of the pointer declarators directly wrapping a name,
    nearest first.

    ``int **p`` yields two stars; ``int (*fp)(void)`` and ``int (*pa)[3]``
    yield one; ``int *a[10]`` yields one (array dimensions follow the name).
    """
    tok = tok_previous(name_tok)
    while tok is not None:
        s = tok_str(tok)
        if s == '*':
            yield tok
        elif s not in POINTER_QUALIFIERS:
            return
        tok = tok_previous(tok)


def array_rank(name_tok: Token) -> int:
    """Number of ``[..]`` dimensions following a declarator name."""
    rank = 0
    tok = tok_next(name_tok)
    while tok_str(tok) == '[':
        rank += 1
        link = tok_link(tok)
        if link is None:
            break
        tok = tok_next(link)
    return rank


def is_declarator_name(tok: Token) -> bool:
    """
    True if *tok* is the name in a declarator of its variable: the
    variable's own ``nameToken`` or a redeclaration such as the ``extern``
    line of a global.
    """
    var = tok_variable(tok)
    if var is None or not tok_var_id(tok):
        return False
    if getattr(var, "nameToken", None) is tok:
        return True
    parent = tok_parent(tok)
    if parent is not None and not (tok_str(parent) == '=' and tok_op1(parent) is tok):
        return False
    prev = tok_previous(tok)
    if tok_str(tok_next(tok)) not in (';', ',', '=', '['):
        return False
    if tok_str(prev) == '*':
        return True
    return is_identifier(prev) and tok_str(prev) not in STATEMENT_KEYWORDS


def is_designator(tok: Token) -> bool:
    """The ``f`` in a designated initializer ``{ .f = value }``."""
    dot = tok_previous(tok)
    if tok_str(dot) != '.':
        return False
    return tok_str(tok_previous(dot)) in ('{', ',') and tok_str(tok_next(tok)) == '='


def is_split_initializer(eq: Token) -> bool:
    """
    The ``=`` of a declaration cppcheck split into ``T x ; x = init ;``.

    Dumps flag it ``isSplittedVarDeclEq``. Tokens that do not carry the
    attribute at all fall back to the shape: the statement before ``x =``
    must end in a declarator of the same variable.
    """
    if tok_str(eq) != '=':
        return False
    flag = getattr(eq, "isSplittedVarDeclEq", None)
    if flag is not None:
        return bool(flag)
    lhs = tok_op1(eq)
    if not is_identifier(lhs) or tok_next(lhs) is not eq:
        return False
    semi = tok_previous(lhs)
    if tok_str(semi) != ';':
        return False
    prev = tok_previous(semi)
    while tok_str(prev) == ']' and tok_link(prev) is not None:
        prev = tok_previous(tok_link(prev))
    return decl_key(prev) == decl_key(lhs) and is_declarator_name(prev)


def is_initializer(eq: Token) -> bool:
    """``=`` introducing a declaration's initial value, split or not."""
    if tok_str(eq) != '=':
        return False
    return is_declarator_name(tok_op1(eq)) or is_split_initializer(eq)


def is_split_declaration_name(tok: Token) -> bool:
    """The repeated ``x`` of ``T x ; x = init ;``."""
    parent = tok_parent(tok)
    return tok_op1(parent) is tok and is_split_initializer(parent)


def declarator_initializer(name_tok: Token) -> Optional[Token]:
    """First token of the value a declarator is initialised with, or ``None``."""
    tok = tok_next(name_tok)
    while tok_str(tok) == '[' and tok_link(tok) is not None:
        tok = tok_next(tok_link(tok))
    if tok_str(tok) == '=':
        return tok_next(tok)
    if tok_str(tok) == ';':
        lhs = tok_next(tok)
        eq = tok_next(lhs)
        if (
            decl_key(lhs) == decl_key(name_tok)
            and tok_op1(eq) is lhs
            and is_split_initializer(eq)
        ):
            return tok_next(eq)
    return None


def is_record_scope(scope: Any) -> bool:
    return getattr(scope, "type", None) in RECORD_SCOPE_TYPES
