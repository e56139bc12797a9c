# tests/conftest.py
"""
Mock objects mirroring the ``cppcheckdata`` model, and a small C front end.

Two layers are provided:

* ``MockToken``, ``MockVariable``, ``MockScope``, ``MockValueType``,
  ``MockFunction``, ``MockConfiguration`` and ``MockCppcheckData`` carry
  the attribute names of their cppcheckdata counterparts;
  ``make_token_chain``, ``make_cfg`` and ``make_data`` build them by hand.

* ``build_unit(source)`` lexes and parses a subset of C and returns a
  ``MockConfiguration`` shaped like the one ``cppcheck --dump`` produces:
  linked token list with 1-based line/column, ASTs following cppcheck's
  conventions, varIds resolved through scopes, Variable and Scope objects
  and ValueTypes with pointer depth and record scope. It lets the passes
  run end to end without a cppcheck installation.

  As cppcheck does, every ``base.member`` access gets a varId of its own
  (``variable`` still points at the member), and ``T x = init;`` is split
  into ``T x ; x = init ;`` with the ``=`` flagged ``isSplittedVarDeclEq``.

Supported C subset
──────────────────
    struct/union definitions and tags, declarations with ``*``, ``[N]``,
    ``(*name)(...)`` and ``(*name)[N]`` declarators, scalar and brace
    initializers with ``.f =`` and ``[i] =`` designators, function
    prototypes and definitions, blocks, ``if``/``else``, ``while``,
    ``return``, expression statements; expressions with assignment,
    binary, prefix and postfix operators, casts, calls, indexing and
    member access.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from cppcheckdata_reduce.transformation import (
    PassConfig,
    ReducePointerLevel,
    TransformationResult,
)


# ═══════════════════════════════════════════════════════════════════════════
#  MOCK MODEL
# ═══════════════════════════════════════════════════════════════════════════

class MockValueType:
    def __init__(self, type="int", pointer=0, typeScope=None, sign=None, constness=0):
        self.type = type
        self.pointer = pointer
        self.typeScope = typeScope
        self.sign = sign
        self.constness = constness

    def __repr__(self):
        return f"MockValueType({self.type!r}, pointer={self.pointer})"


class MockToken:
    _counter = 0

    def __init__(self, **kwargs):
        MockToken._counter += 1
        self.Id = f"t{MockToken._counter}"
        self.str = ""
        self.next = None
        self.previous = None
        self.link = None
        self.file = "test.c"
        self.linenr = 1
        self.column = 1
        self.varId = 0
        self.variable = None
        self.function = None
        self.scope = None
        self.astParent = None
        self.astOperand1 = None
        self.astOperand2 = None
        self.isName = False
        self.isNumber = False
        self.isString = False
        self.isOp = False
        self.isCast = False
        self.isAssignmentOp = False
        self.isEnumerator = False
        self.originalName = None
        self.isSplittedVarDeclEq = False
        self.valueType = None
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __repr__(self):
        return f"MockToken({self.str!r} @ {self.linenr}:{self.column})"


class MockScope:
    def __init__(self, type="Global", className="", nestedIn=None, varlist=None):
        self.type = type
        self.className = className
        self.nestedIn = nestedIn
        self.varlist = list(varlist or [])

    def __repr__(self):
        return f"MockScope({self.type!r}, {self.className!r})"


class MockVariable:
    def __init__(self, nameToken=None, scope=None, isArgument=False, isLocal=False,
                 isGlobal=False, isArray=False, isPointer=False, typeStartToken=None):
        self.nameToken = nameToken
        self.scope = scope
        self.isArgument = isArgument
        self.isLocal = isLocal
        self.isGlobal = isGlobal
        self.isArray = isArray
        self.isPointer = isPointer
        self.typeStartToken = typeStartToken


class MockFunction:
    def __init__(self, name="", tokenDef=None):
        self.name = name
        self.tokenDef = tokenDef


class MockConfiguration:
    def __init__(self, tokenlist=None, name="", variables=None, scopes=None, functions=None):
        self.name = name
        self.tokenlist = list(tokenlist or [])
        self.variables = list(variables or [])
        self.scopes = list(scopes or [])
        self.functions = list(functions or [])


class MockCppcheckData:
    def __init__(self, configurations=None):
        self.configurations = list(configurations or [])


def make_token_chain(specs: List[Dict[str, Any]], file: str = "test.c") -> List[MockToken]:
    """Tokens from attribute dicts, linked through next/previous on one line."""
    tokens = []
    column = 1
    for spec in specs:
        attrs = {"file": file, "column": column}
        attrs.update(spec)
        tok = MockToken(**attrs)
        column += len(tok.str) + 1
        if tokens:
            tokens[-1].next = tok
            tok.previous = tokens[-1]
        tokens.append(tok)
    return tokens


def make_cfg(tokens: List[MockToken], **kwargs) -> MockConfiguration:
    return MockConfiguration(tokenlist=tokens, **kwargs)


def make_data(*configurations: MockConfiguration) -> MockCppcheckData:
    return MockCppcheckData(configurations=list(configurations))


def set_ast(op: MockToken, operand1: Optional[MockToken], operand2: Optional[MockToken] = None) -> MockToken:
    """Attach AST operands to *op* (and the parent links back)."""
    op.astOperand1 = operand1
    if operand1 is not None:
        operand1.astParent = op
    op.astOperand2 = operand2
    if operand2 is not None:
        operand2.astParent = op
    return op


# ═══════════════════════════════════════════════════════════════════════════
#  LEXER
# ═══════════════════════════════════════════════════════════════════════════

_ASSIGNMENT_OPS = {"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>="}

_PUNCTUATORS = sorted(
    [
        "<<=", ">>=", "...", "->", "++", "--", "<<", ">>", "<=", ">=", "==",
        "!=", "&&", "||", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=",
        "{", "}", "(", ")", "[", "]", ";", ",", ".", "=", "<", ">", "+",
        "-", "*", "/", "%", "&", "|", "^", "!", "~", "?", ":",
    ],
    key=len,
    reverse=True,
)

_TOKEN_RE = re.compile(
    r"(?P<ws>[ \t\r\n]+)"
    r"|(?P<comment>//[^\n]*|/\*.*?\*/)"
    r"|(?P<name>[A-Za-z_]\w*)"
    r"|(?P<number>\d+[uUlL]*)"
    r'|(?P<string>"(?:\\.|[^"\\\n])*")'
    r"|(?P<char>'(?:\\.|[^'\\\n])*')"
    r"|(?P<punct>" + "|".join(re.escape(p) for p in _PUNCTUATORS) + r")",
    re.DOTALL,
)

_BRACKETS = {"(": ")", "[": "]", "{": "}"}


def tokenize(source: str, file: str = "test.c") -> List[MockToken]:
    tokens: List[MockToken] = []
    line, line_start, pos = 1, 0, 0
    while pos < len(source):
        m = _TOKEN_RE.match(source, pos)
        if m is None:
            raise SyntaxError(f"{file}:{line}: cannot tokenize {source[pos:pos + 10]!r}")
        kind, text = m.lastgroup, m.group()
        if kind not in ("ws", "comment"):
            tok = MockToken(str=text, file=file, linenr=line, column=m.start() - line_start + 1)
            if kind == "name":
                tok.isName = True
            elif kind == "number":
                tok.isNumber = True
            elif kind == "string":
                tok.isString = True
            elif kind == "punct":
                tok.isOp = text not in _BRACKETS and text not in (")", "]", "}", ";", ",")
                tok.isAssignmentOp = text in _ASSIGNMENT_OPS
                if text == "->":
                    tok.str = "."
                    tok.originalName = "->"
            tokens.append(tok)
        newlines = text.count("\n")
        if newlines:
            line += newlines
            line_start = m.start() + text.rindex("\n") + 1
        pos = m.end()

    stack: List[MockToken] = []
    for prev, tok in zip([None] + tokens, tokens):
        if prev is not None:
            prev.next = tok
            tok.previous = prev
        if tok.str in _BRACKETS:
            stack.append(tok)
        elif tok.str in (")", "]", "}"):
            if not stack or _BRACKETS[stack[-1].str] != tok.str:
                raise SyntaxError(f"{file}:{tok.linenr}: unbalanced {tok.str!r}")
            opener = stack.pop()
            opener.link = tok
            tok.link = opener
    if stack:
        raise SyntaxError(f"{file}: unclosed {stack[-1].str!r}")
    return tokens


# ═══════════════════════════════════════════════════════════════════════════
#  PARSER
# ═══════════════════════════════════════════════════════════════════════════

_TYPE_WORDS = {"void", "char", "short", "int", "long", "float", "double",
               "signed", "unsigned", "_Bool"}
_QUALIFIERS = {"const", "volatile", "restrict"}
_STORAGE = {"extern", "static", "register", "auto", "inline"}
_RECORD_WORDS = {"struct", "union"}
_BASE_TYPES = {"void", "char", "float", "double", "_Bool"}
_KEYWORDS = (_TYPE_WORDS | _QUALIFIERS | _STORAGE | _RECORD_WORDS
             | {"return", "if", "else", "while", "typedef", "sizeof"})

_BINARY_BP = {
    "||": 4, "&&": 5, "|": 6, "^": 7, "&": 8, "==": 9, "!=": 9,
    "<": 10, ">": 10, "<=": 10, ">=": 10, "<<": 11, ">>": 11,
    "+": 12, "-": 12, "*": 13, "/": 13, "%": 13,
}
_PREFIX_OPS = {"&", "*", "+", "-", "!", "~", "++", "--"}
_ALLOCATORS = {"malloc", "calloc", "realloc", "strdup", "alloca"}


class _Declarator:
    def __init__(self, name, stars, dims, params, paren):
        self.name = name          # name token or None (abstract)
        self.stars = stars        # pointer declarators wrapping the name
        self.dims = dims          # array dimensions after the name
        self.params = params      # parameter list for function declarators
        self.paren = paren        # (*name)(...) / (*name)[N] form

    @property
    def level(self) -> int:
        if self.paren:
            return self.stars
        return self.stars + self.dims


class _Parser:
    def __init__(self, tokens: List[MockToken], split: bool = True) -> None:
        self.toks = tokens
        self.split = split
        self.pos = 0
        self.index = {id(t): i for i, t in enumerate(tokens)}
        self.var_id = 0
        self.member_ids: Dict[Tuple[int, int], int] = {}
        self.base_type = "int"
        self.type_start: Optional[MockToken] = None
        self.variables: List[MockVariable] = []
        self.scopes: List[MockScope] = []
        self.functions: Dict[str, MockFunction] = {}
        self.records: Dict[str, MockScope] = {}
        self.stack: List[Tuple[MockScope, Dict[str, MockVariable]]] = []
        self.push_scope("Global")

    # ── token cursor ────────────────────────────────────────────────────

    def peek(self, k: int = 0) -> MockToken:
        i = self.pos + k
        if i < len(self.toks):
            return self.toks[i]
        return MockToken(str="<eof>")

    def at(self, s: str) -> bool:
        return self.peek().str == s

    def advance(self) -> MockToken:
        tok = self.peek()
        if tok.str == "<eof>":
            raise SyntaxError("unexpected end of input")
        self.pos += 1
        return tok

    def expect(self, s: str) -> MockToken:
        tok = self.peek()
        if tok.str != s:
            raise SyntaxError(f"{tok.file}:{tok.linenr}:{tok.column}: expected {s!r}, got {tok.str!r}")
        return self.advance()

    def skip_past(self, opener: MockToken) -> None:
        self.pos = self.index[id(opener.link)] + 1

    # ── scopes ──────────────────────────────────────────────────────────

    def push_scope(self, type_: str, class_name: str = "", scope: Optional[MockScope] = None) -> MockScope:
        if scope is None:
            nested_in = self.stack[-1][0] if self.stack else None
            scope = MockScope(type=type_, className=class_name, nestedIn=nested_in)
            self.scopes.append(scope)
        self.stack.append((scope, {}))
        return scope

    def pop_scope(self) -> None:
        self.stack.pop()

    def lookup(self, name: str) -> Optional[MockVariable]:
        for _, names in reversed(self.stack):
            if name in names:
                return names[name]
        return None

    # ── top level ───────────────────────────────────────────────────────

    def parse_unit(self) -> None:
        while self.peek().str != "<eof>":
            self.parse_declaration(top_level=True)

    def starts_declaration(self) -> bool:
        s = self.peek().str
        return s in _TYPE_WORDS or s in _QUALIFIERS or s in _STORAGE or s in _RECORD_WORDS

    def parse_declaration(self, top_level: bool = False) -> None:
        if self.at(";"):
            self.advance()
            return
        if self.at("typedef"):
            while not self.at(";"):
                self.advance()
            self.advance()
            return
        record = self.parse_specifiers()
        base, type_start = self.base_type, self.type_start
        if self.at(";"):
            self.advance()
            return
        while True:
            d = self.parse_declarator()
            if d.params is not None and not d.paren:
                func = self.declare_function(d, record, base)
                if top_level and self.at("{"):
                    self.define_function(func, d)
                    return
            else:
                self.declare_variable(d, record, base=base, type_start=type_start)
            if self.at(","):
                self.advance()
                continue
            self.expect(";")
            return

    def parse_specifiers(self) -> Optional[MockScope]:
        """Consume specifiers; ``base_type``/``type_start`` describe them afterwards."""
        record = None
        base = "int"
        type_start = None
        while True:
            s = self.peek().str
            if type_start is None and s not in _STORAGE:
                type_start = self.peek()
            if s in _TYPE_WORDS or s in _QUALIFIERS or s in _STORAGE:
                if s in _BASE_TYPES:
                    base = s
                self.advance()
            elif s in _RECORD_WORDS:
                base = "record"
                kind = self.advance().str
                tag = ""
                if self.peek().isName and self.peek().str not in _KEYWORDS:
                    tag = self.advance().str
                if tag and tag in self.records:
                    record = self.records[tag]
                else:
                    record = MockScope(type=kind.capitalize(), className=tag,
                                       nestedIn=self.stack[-1][0])
                    self.scopes.append(record)
                    if tag:
                        self.records[tag] = record
                if self.at("{"):
                    self.parse_record_body(record)
            else:
                self.base_type, self.type_start = base, type_start
                return record

    def parse_record_body(self, record: MockScope) -> None:
        self.expect("{")
        self.push_scope(record.type, scope=record)
        while not self.at("}"):
            member_record = self.parse_specifiers()
            base, type_start = self.base_type, self.type_start
            while True:
                d = self.parse_declarator()
                self.declare_variable(d, member_record, base=base, type_start=type_start)
                if self.at(","):
                    self.advance()
                    continue
                self.expect(";")
                break
        self.pop_scope()
        self.expect("}")

    def parse_declarator(self) -> _Declarator:
        stars = 0
        while self.at("*") or self.peek().str in _QUALIFIERS:
            if self.advance().str == "*":
                stars += 1
        name = None
        paren = False
        if self.at("(") and self.peek(1).str == "*":
            paren = True
            self.advance()
            stars = 0
            while self.at("*") or self.peek().str in _QUALIFIERS:
                if self.advance().str == "*":
                    stars += 1
            if self.peek().isName:
                name = self.advance()
            self.expect(")")
        elif self.peek().isName and self.peek().str not in _KEYWORDS:
            name = self.advance()
        dims = 0
        while self.at("["):
            self.skip_past(self.peek())
            dims += 1
        params = None
        if self.at("("):
            params = self.parse_params()
        return _Declarator(name, stars, dims, params, paren)

    def parse_params(self) -> List[Tuple[Optional[MockScope], str, Optional[MockToken], _Declarator]]:
        self.expect("(")
        params = []
        if self.at("void") and self.peek(1).str == ")":
            self.advance()
        while not self.at(")"):
            if self.at("..."):
                self.advance()
            else:
                record = self.parse_specifiers()
                base, type_start = self.base_type, self.type_start
                params.append((record, base, type_start, self.parse_declarator()))
            if self.at(","):
                self.advance()
        self.expect(")")
        return params

    # ── declarations ────────────────────────────────────────────────────

    def declare_function(self, d: _Declarator, record: Optional[MockScope], base: str = "int") -> MockFunction:
        name = d.name.str
        func = self.functions.get(name)
        if func is None:
            func = MockFunction(name=name, tokenDef=d.name)
            func.return_type = MockValueType(type=base, pointer=d.stars, typeScope=record)
            self.functions[name] = func
        d.name.function = func
        return func

    def define_function(self, func: MockFunction, d: _Declarator) -> None:
        self.push_scope("Function", func.name)
        for record, base, type_start, pd in d.params:
            if pd.name is not None:
                self.declare_variable(pd, record, argument=True, base=base, type_start=type_start)
        self.parse_block(new_scope=False)
        self.pop_scope()

    def declare_variable(
        self,
        d: _Declarator,
        record: Optional[MockScope],
        argument: bool = False,
        base: str = "int",
        type_start: Optional[MockToken] = None,
    ) -> None:
        if d.name is None:
            return
        scope, names = self.stack[-1]
        var = names.get(d.name.str)
        if var is None or scope.type != "Global":
            self.var_id += 1
            var = MockVariable(
                nameToken=d.name,
                scope=scope,
                isArgument=argument,
                isLocal=scope.type not in ("Global", "Struct", "Union") and not argument,
                isGlobal=scope.type == "Global",
                isArray=d.dims > 0,
                isPointer=d.level > 0,
                typeStartToken=type_start,
            )
            var.var_id = self.var_id
            var.value_type = MockValueType(type=base, pointer=d.level, typeScope=record)
            var.elem_record = record if d.stars == 0 else None
            var.dims = d.dims
            names[d.name.str] = var
            self.variables.append(var)
            if scope.type in ("Struct", "Union"):
                scope.varlist.append(var)
        self.bind(d.name, var)

        if not self.at("="):
            return
        lhs = d.name
        if self.split:
            lhs = self.split_declaration(d.name)
            self.bind(lhs, var)
        eq = self.advance()
        eq.isSplittedVarDeclEq = self.split
        if self.at("{"):
            rhs = self.parse_brace_init(var.elem_record, d.dims)
        else:
            rhs = self.parse_assignment()
        set_ast(eq, lhs, rhs)
        eq.valueType = lhs.valueType

    def split_declaration(self, name: MockToken) -> MockToken:
        """
        Rewrite ``T x = init`` into cppcheck's ``T x ; x = init`` and move
        the cursor onto the ``=``; returns the inserted ``x``.
        """
        eq = self.peek()
        prev = eq.previous
        semi = MockToken(str=";", file=name.file, linenr=name.linenr, column=name.column)
        lhs = MockToken(str=name.str, isName=True, file=name.file,
                        linenr=name.linenr, column=name.column)
        prev.next, semi.previous = semi, prev
        semi.next, lhs.previous = lhs, semi
        lhs.next, eq.previous = eq, lhs
        self.toks[self.pos:self.pos] = [semi, lhs]
        self.index = {id(t): i for i, t in enumerate(self.toks)}
        self.pos += 2
        return lhs

    def bind(self, tok: MockToken, var: MockVariable) -> None:
        tok.varId = var.var_id
        tok.variable = var
        tok.valueType = var.value_type

    def bind_member(self, tok: MockToken, var: MockVariable, base: MockToken) -> None:
        """Member accesses get a varId of their own per base variable."""
        pair = (base.varId, var.var_id)
        if pair not in self.member_ids:
            self.var_id += 1
            self.member_ids[pair] = self.var_id
        tok.varId = self.member_ids[pair]
        tok.variable = var
        tok.valueType = var.value_type

    def parse_brace_init(self, record: Optional[MockScope], rank: int) -> MockToken:
        open_tok = self.expect("{")
        members = list(record.varlist) if record is not None and rank == 0 else []
        index = 0
        while not self.at("}"):
            member = members[index] if index < len(members) else None
            if self.at(".") and self.peek(1).isName and self.peek(2).str == "=":
                self.advance()
                name_tok = self.advance()
                self.advance()
                member = next((m for m in members if m.nameToken.str == name_tok.str), None)
                if member is not None:
                    self.bind(name_tok, member)
                    index = members.index(member)
            elif self.at("["):
                self.skip_past(self.peek())
                self.expect("=")
            if self.at("{"):
                if rank > 0:
                    self.parse_brace_init(record, rank - 1)
                elif member is not None:
                    self.parse_brace_init(member.elem_record, member.dims)
                else:
                    self.parse_brace_init(None, 0)
            else:
                self.parse_assignment()
            index += 1
            if not self.at(","):
                break
            self.advance()
        self.expect("}")
        return open_tok

    # ── statements ──────────────────────────────────────────────────────

    def parse_block(self, new_scope: bool = True) -> None:
        self.expect("{")
        if new_scope:
            self.push_scope("Unconditional")
        while not self.at("}"):
            self.parse_statement()
        if new_scope:
            self.pop_scope()
        self.expect("}")

    def parse_statement(self) -> None:
        tok = self.peek()
        if tok.str == "{":
            self.parse_block()
        elif tok.str == ";":
            self.advance()
        elif tok.str == "return":
            self.advance()
            if not self.at(";"):
                set_ast(tok, self.parse_expression())
            self.expect(";")
        elif tok.str in ("if", "while"):
            self.advance()
            paren = self.expect("(")
            set_ast(paren, tok, self.parse_expression())
            self.expect(")")
            self.parse_statement()
            if tok.str == "if" and self.at("else"):
                self.advance()
                self.parse_statement()
        elif self.starts_declaration() or tok.str == "typedef":
            self.parse_declaration()
        else:
            self.parse_expression()
            self.expect(";")

    # ── expressions ─────────────────────────────────────────────────────

    def parse_expression(self) -> MockToken:
        return self.parse_assignment()

    def parse_assignment(self) -> MockToken:
        lhs = self.parse_binary(1)
        if self.peek().str in _ASSIGNMENT_OPS:
            op = self.advance()
            set_ast(op, lhs, self.parse_assignment())
            op.valueType = lhs.valueType
            return op
        return lhs

    def parse_binary(self, min_bp: int) -> MockToken:
        lhs = self.parse_unary()
        while True:
            op = self.peek()
            bp = _BINARY_BP.get(op.str)
            if bp is None or bp < min_bp:
                return lhs
            self.advance()
            rhs = self.parse_binary(bp + 1)
            set_ast(op, lhs, rhs)
            op.valueType = _binary_type(op.str, lhs, rhs)
            lhs = op

    def parse_unary(self) -> MockToken:
        tok = self.peek()
        if tok.str in _PREFIX_OPS:
            self.advance()
            operand = self.parse_unary()
            set_ast(tok, operand)
            tok.valueType = _unary_type(tok.str, operand)
            return tok
        if tok.str == "(" and self.is_type_start(self.peek(1)):
            self.advance()
            record = self.parse_specifiers()
            d = self.parse_declarator()
            self.expect(")")
            set_ast(tok, self.parse_unary())
            tok.isCast = True
            tok.valueType = MockValueType(type=self.base_type, pointer=d.stars, typeScope=record)
            return tok
        return self.parse_postfix()

    def is_type_start(self, tok: MockToken) -> bool:
        s = tok.str
        return s in _TYPE_WORDS or s in _QUALIFIERS or s in _RECORD_WORDS

    def parse_postfix(self) -> MockToken:
        node = self.parse_primary()
        while True:
            tok = self.peek()
            if tok.str == "[":
                self.advance()
                index = self.parse_expression()
                self.expect("]")
                set_ast(tok, node, index)
                base = node if _level(node) > 0 else index
                tok.valueType = _with_level(base, _level(base) - 1)
            elif tok.str == "(":
                self.advance()
                args = None
                if not self.at(")"):
                    args = self.parse_assignment()
                    while self.at(","):
                        comma = self.advance()
                        args = set_ast(comma, args, self.parse_assignment())
                self.expect(")")
                set_ast(tok, node, args)
                tok.valueType = self.call_type(node)
            elif tok.str == ".":
                self.advance()
                member = self.advance()
                self.resolve_member(node, member)
                set_ast(tok, node, member)
                tok.valueType = member.valueType
            elif tok.str in ("++", "--"):
                self.advance()
                set_ast(tok, node)
                tok.valueType = node.valueType
            else:
                return node
            node = tok

    def parse_primary(self) -> MockToken:
        tok = self.advance()
        if tok.str == "(":
            inner = self.parse_expression()
            self.expect(")")
            return inner
        if tok.isNumber:
            tok.valueType = MockValueType(pointer=0)
        elif tok.isString:
            tok.valueType = MockValueType(type="char", pointer=1)
        elif tok.isName and tok.str not in _KEYWORDS:
            var = self.lookup(tok.str)
            if var is not None:
                self.bind(tok, var)
            elif tok.str in self.functions:
                tok.function = self.functions[tok.str]
        else:
            raise SyntaxError(f"{tok.file}:{tok.linenr}:{tok.column}: unexpected {tok.str!r}")
        return tok

    def resolve_member(self, base: MockToken, member: MockToken) -> None:
        vt = base.valueType
        candidates = []
        if vt is not None and vt.typeScope is not None:
            candidates.append(vt.typeScope)
        candidates.extend(s for s in self.scopes if s.type in ("Struct", "Union"))
        for scope in candidates:
            for var in scope.varlist:
                if var.nameToken.str == member.str:
                    self.bind_member(member, var, base)
                    return

    def call_type(self, callee: MockToken) -> Optional[MockValueType]:
        func = callee.function
        if func is not None:
            return func.return_type
        if callee.str in _ALLOCATORS:
            return MockValueType(type="void", pointer=1)
        return MockValueType(pointer=0)


def _level(tok: Optional[MockToken]) -> int:
    vt = getattr(tok, "valueType", None)
    return vt.pointer if vt is not None else 0


def _with_level(tok: MockToken, level: int) -> MockValueType:
    vt = tok.valueType
    return MockValueType(
        type=vt.type if vt is not None else "int",
        pointer=max(level, 0),
        typeScope=vt.typeScope if vt is not None else None,
    )


def _unary_type(op: str, operand: MockToken) -> MockValueType:
    if op == "&":
        return _with_level(operand, _level(operand) + 1)
    if op == "*":
        return _with_level(operand, _level(operand) - 1)
    if op == "!":
        return MockValueType(pointer=0)
    return _with_level(operand, _level(operand))


def _binary_type(op: str, lhs: MockToken, rhs: MockToken) -> MockValueType:
    if op in ("+", "-"):
        if _level(lhs) and not _level(rhs):
            return _with_level(lhs, _level(lhs))
        if op == "+" and _level(rhs) and not _level(lhs):
            return _with_level(rhs, _level(rhs))
    return MockValueType(pointer=0)


def build_unit(
    source: str,
    file: str = "test.c",
    name: str = "",
    split_declarations: bool = True,
) -> MockConfiguration:
    """
    Parse *source* into a cppcheck-shaped ``MockConfiguration``.

    As in real dumps, ``T x = init;`` is split into ``T x ; x = init ;``
    with the ``=`` flagged ``isSplittedVarDeclEq``; pass
    ``split_declarations=False`` to keep the source shape.
    """
    tokens = tokenize(source, file)
    parser = _Parser(tokens, split=split_declarations)
    parser.parse_unit()
    return MockConfiguration(
        tokenlist=parser.toks,
        name=name,
        variables=parser.variables,
        scopes=parser.scopes,
        functions=list(parser.functions.values()),
    )


# ═══════════════════════════════════════════════════════════════════════════
#  PASS HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def run_pass(
    source: str,
    counter: int = 1,
    query_only: bool = False,
    file: str = "test.c",
    config: Optional[PassConfig] = None,
) -> TransformationResult:
    """Run reduce-pointer-level on *source* with the text served from memory."""
    cfg = build_unit(source, file)
    texts = {file: source}
    return ReducePointerLevel(config=config, loader=texts.__getitem__).run(
        cfg, counter=counter, query_only=query_only,
    )


def reduce_text(source: str, counter: int = 1, file: str = "test.c") -> str:
    """Rewritten text of *source* for instance *counter*; the pass must succeed."""
    result = run_pass(source, counter=counter, file=file)
    assert result.ok, result.error
    return result.rewritten.get(file, source)


@pytest.fixture
def unit() -> Callable[..., MockConfiguration]:
    return build_unit


@pytest.fixture
def write_source(tmp_path):
    """Write a C file into tmp_path; returns ``(path, cfg)``."""
    def _write(source: str, name: str = "prog.c"):
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path, build_unit(source, file=str(path))
    return _write
