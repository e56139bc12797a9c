# cppcheckdata_reduce/collector.py
"""
Collection phase of the reduce-pointer-level pass.

One forward walk over the token list of a dump configuration fills a
:class:`~cppcheckdata_reduce.context.ReductionContext`:

* every declarator of a variable or field whose array-unwrapped type is a
  pointer is bucketed by indirection level;
* every ``&`` applied to a name or member access marks that declaration
  address-taken;
* every pointer assignment whose right-hand side is not a plain reference,
  a unary expression or an indexing expression disqualifies the declaration
  on its left-hand side.

The walk must see the whole translation unit before anything is selected:
whether a low-level declaration is eligible depends on facts gathered
anywhere in the file.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .ast_helper import (
    Token,
    array_rank,
    decl_key,
    declarator_stars,
    is_address_of,
    is_assignment,
    is_declaration_reference,
    is_declarator_name,
    is_dereference,
    is_identifier,
    is_initializer,
    is_member_access,
    is_record_scope,
    is_subscript,
    is_unary_expression,
    pointer_level,
    skip_casts,
    tok_op1,
    tok_op2,
    tok_str,
    tok_variable,
)
from .context import DeclKey, PointerDecl, ReductionContext
from .errors import InvariantViolation, ReduceErrorCodes, SourceSpan

logger = logging.getLogger(__name__)

# Fields synthesised for __builtin_va_list lowering; not user-manipulable.
VA_ARG_FIELDS = ("reg_save_area", "overflow_arg_area")


class PointerLevelCollector:
    """
    Builds the classification tables for one configuration.

    Usage::

        ctx = PointerLevelCollector().collect(cfg)
        ctx.max_level, ctx.bucket(ctx.max_level)
    """

    def __init__(
        self,
        excluded_fields=VA_ARG_FIELDS,
        include_locals: bool = True,
        include_fields: bool = True,
    ) -> None:
        self.excluded_fields = frozenset(excluded_fields)
        self.include_locals = include_locals
        self.include_fields = include_fields
        self.context = ReductionContext()

    def collect(self, cfg: Any) -> ReductionContext:
        """Walk ``cfg.tokenlist`` once and return the frozen tables."""
        for tok in getattr(cfg, "tokenlist", None) or []:
            if is_declarator_name(tok):
                self.visit_declarator(tok)
            if is_address_of(tok):
                self.visit_address_of(tok)
            elif is_assignment(tok):
                self.visit_assignment(tok)

        self.context.freeze()
        logger.info(
            "collected %d pointer declaration(s), max level %d, "
            "%d address-taken, %d disqualified",
            len(self.context),
            self.context.max_level,
            len(self.context.addr_taken),
            len(self.context.disqualified),
        )
        return self.context

    # ── declarators ─────────────────────────────────────────────────────

    def visit_declarator(self, name_tok: Token) -> None:
        var = tok_variable(name_tok)
        if getattr(var, "isArgument", False):
            return
        name = tok_str(name_tok)
        if name in self.excluded_fields:
            return

        scope = getattr(var, "scope", None)
        is_field = is_record_scope(scope)
        if is_field and not self.include_fields:
            return
        if not is_field and not self.include_locals and getattr(var, "isLocal", False):
            return

        level = sum(1 for _ in declarator_stars(name_tok))
        if level == 0:
            return

        decl = PointerDecl(
            key=decl_key(name_tok),
            name=name,
            level=level,
            span=SourceSpan.from_token(name_tok),
            is_field=is_field,
            record=getattr(scope, "className", None) if is_field else None,
            array_rank=array_rank(name_tok),
        )
        if self.context.add_decl(decl):
            logger.debug("declaration %s", decl)

    # ── address-of ──────────────────────────────────────────────────────

    def visit_address_of(self, tok: Token) -> None:
        operand = skip_casts(tok_op1(tok))
        if is_member_access(operand):
            target = tok_op2(operand)
        elif is_identifier(operand):
            target = operand
        else:
            return

        key = decl_key(target)
        if not key:
            # functions and members of unknown records have no varId;
            # they can never be in the tables
            logger.debug("address of unresolved %r ignored", tok_str(target))
            return
        self.context.mark_address_taken(key)
        logger.debug("address taken: %s (varId %d)", tok_str(target), key)

    # ── assignments ─────────────────────────────────────────────────────

    def visit_assignment(self, tok: Token) -> None:
        lhs = tok_op1(tok)
        if pointer_level(lhs) == 0:
            return
        if is_initializer(tok):
            # declaration initializer, including cppcheck's split
            # "T x ; x = init ;" form; not an assignment expression
            return

        rhs = skip_casts(tok_op2(tok))
        if (
            is_declaration_reference(rhs)
            or is_unary_expression(rhs)
            or is_subscript(rhs)
        ):
            return

        key = resolve_referenced_decl(lhs)
        if self.context.is_valid(key):
            logger.debug(
                "disqualified varId %d: %r assigned from %r",
                key, tok_str(lhs), tok_str(rhs),
            )
        self.context.disqualify(key)


def resolve_referenced_decl(expr: Optional[Token]) -> DeclKey:
    """
    Canonical key of the declaration an lvalue expression is rooted at.

    Indexing bases and dereference chains are unwrapped; member access
    resolves to the member. Anything else means the token model broke an
    assumption of the pass and raises :class:`InvariantViolation`.
    """
    node = skip_casts(expr)
    while is_subscript(node):
        node = skip_casts(tok_op1(node))

    if is_member_access(node):
        key = decl_key(tok_op2(node))
    elif is_identifier(node):
        key = decl_key(node)
    elif is_dereference(node):
        return resolve_referenced_decl(tok_op1(node))
    else:
        key = 0

    if not key:
        raise InvariantViolation(
            f"assignment target {tok_str(node)!r} does not resolve to a declaration",
            code=ReduceErrorCodes.UNRESOLVED_LHS,
            span=SourceSpan.from_token(node if node is not None else expr),
        )
    return key
