"""Restricted expression language for ``@annotate-cfg`` values.

Range functions and clamp bounds are written in a small JavaScript-flavoured
language, e.g.::

    { start = 8 + start * 3 - 1; end = 8 + end * 3 - 2 }
    [7, 54]

Source is tokenized, parsed into a tiny tree and interpreted against a local
environment. Only arithmetic, comparisons, conditionals, assignments and a
handful of math helpers exist; there is no way to reach Python objects,
attributes, imports or I/O from an expression.
"""

from __future__ import annotations

import math
import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Union


class RangeExpressionError(ValueError):
    """Base error for range/clamp expressions."""


class RangeSyntaxError(RangeExpressionError):
    def __init__(self, message: str, column: int | None = None):
        super().__init__(message if column is None else f"{message} (column {column + 1})")
        self.column = column


class RangeEvaluationError(RangeExpressionError):
    pass


_TOKEN_RE = re.compile(
    r"(?P<num>\d+(?:\.\d+)?|\.\d+)"
    r"|(?P<name>[A-Za-z_$][A-Za-z0-9_$]*)"
    r"|(?P<op>===|!==|==|!=|<=|>=|&&|\|\||\+=|-=|\*=|/=|%=|[-+*/%<>=!?:()\[\]{},;.])"
)
_ASSIGN_OPS = {"=", "+=", "-=", "*=", "/=", "%="}
_DECLARATION_WORDS = {"let", "const", "var"}
_RESERVED_WORDS = _DECLARATION_WORDS | {"if", "else", "return", "true", "false", "Math"}
_MAX_NESTING = 64


@dataclass(frozen=True, slots=True)
class Token:
    kind: str  # num | name | op | eof
    text: str
    column: int


def tokenize(source: str) -> list[Token]:
    text = str(source or "")
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise RangeSyntaxError(f"Unexpected character '{text[pos]}'", pos)
        kind = match.lastgroup or "op"
        tokens.append(Token(kind, match.group(0), pos))
        pos = match.end()
    tokens.append(Token("eof", "", len(text)))
    return tokens


# ---------------- syntax tree ----------------

@dataclass(frozen=True, slots=True)
class Number:
    value: Union[int, float]


@dataclass(frozen=True, slots=True)
class Boolean:
    value: bool


@dataclass(frozen=True, slots=True)
class Name:
    ident: str


@dataclass(frozen=True, slots=True)
class ListLiteral:
    items: tuple


@dataclass(frozen=True, slots=True)
class Unary:
    op: str
    operand: object


@dataclass(frozen=True, slots=True)
class Binary:
    op: str
    left: object
    right: object


@dataclass(frozen=True, slots=True)
class Conditional:
    test: object
    then: object
    otherwise: object


@dataclass(frozen=True, slots=True)
class Call:
    func: str
    args: tuple


@dataclass(frozen=True, slots=True)
class ExprStatement:
    expr: object


@dataclass(frozen=True, slots=True)
class Assign:
    target: str
    op: str
    value: object


@dataclass(frozen=True, slots=True)
class Declare:
    bindings: tuple  # ((name, expr | None), ...)


@dataclass(frozen=True, slots=True)
class Block:
    body: tuple


@dataclass(frozen=True, slots=True)
class If:
    test: object
    then: object
    otherwise: object | None


@dataclass(frozen=True, slots=True)
class Return:
    value: object | None


# ---------------- parser ----------------

class _Parser:
    def __init__(self, source: str):
        self.tokens = tokenize(source)
        self.token_pos = 0
        self._depth = 0

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.token_pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def consume(self) -> Token:
        tok = self.peek()
        if tok.kind != "eof":
            self.token_pos += 1
        return tok

    def at(self, text: str, kind: str = "op") -> bool:
        tok = self.peek()
        return tok.kind == kind and tok.text == text

    def try_consume(self, text: str, kind: str = "op") -> bool:
        if self.at(text, kind):
            self.consume()
            return True
        return False

    def expect(self, text: str) -> Token:
        tok = self.peek()
        if tok.kind != "op" or tok.text != text:
            raise RangeSyntaxError(f"Expected '{text}' but found {self._describe(tok)}", tok.column)
        return self.consume()

    def expect_end(self) -> None:
        tok = self.peek()
        if tok.kind != "eof":
            raise RangeSyntaxError(f"Unexpected {self._describe(tok)}", tok.column)

    @staticmethod
    def _describe(tok: Token) -> str:
        return "end of input" if tok.kind == "eof" else f"'{tok.text}'"

    # statements

    def parse_program(self) -> Block:
        body = self._statements(until_brace=False)
        self.expect_end()
        return Block(tuple(body))

    def _statements(self, *, until_brace: bool) -> list:
        body: list = []
        while True:
            while self.try_consume(";"):
                pass
            tok = self.peek()
            if tok.kind == "eof" or (until_brace and self.at("}")):
                return body
            stmt, needs_separator = self._statement()
            body.append(stmt)
            if needs_separator and not (self.at(";") or self.at("}") or self.peek().kind == "eof"):
                raise RangeSyntaxError(f"Expected ';' but found {self._describe(self.peek())}", self.peek().column)

    def _statement(self) -> tuple[object, bool]:
        self._enter()
        try:
            return self._statement_body()
        finally:
            self._leave()

    def _statement_body(self) -> tuple[object, bool]:
        tok = self.peek()
        if tok.kind == "op" and tok.text == "{":
            return self._block(), False
        if tok.kind == "name":
            if tok.text in _DECLARATION_WORDS:
                return self._declaration(), True
            if tok.text == "if":
                return self._if_statement(), False
            if tok.text == "return":
                self.consume()
                if self.at(";") or self.at("}") or self.peek().kind == "eof":
                    return Return(None), True
                return Return(self.expression()), True
            nxt = self.peek(1)
            if nxt.kind == "op" and nxt.text in _ASSIGN_OPS:
                target = self._assign_target()
                op = self.consume().text
                return Assign(target, op, self.expression()), True
        return ExprStatement(self.expression()), True

    def _block(self) -> Block:
        self.expect("{")
        self._enter()
        body = self._statements(until_brace=True)
        self._leave()
        self.expect("}")
        return Block(tuple(body))

    def _assign_target(self) -> str:
        tok = self.consume()
        if tok.kind != "name" or tok.text in _RESERVED_WORDS:
            raise RangeSyntaxError(f"Cannot assign to {self._describe(tok)}", tok.column)
        return tok.text

    def _declaration(self) -> Declare:
        self.consume()
        bindings = []
        while True:
            name = self._assign_target()
            value = self.expression() if self.try_consume("=") else None
            bindings.append((name, value))
            if not self.try_consume(","):
                break
        return Declare(tuple(bindings))

    def _if_statement(self) -> If:
        self.consume()
        self.expect("(")
        test = self.expression()
        self.expect(")")
        then, _ = self._statement()
        self.try_consume(";")
        otherwise = None
        if self.try_consume("else", kind="name"):
            otherwise, _ = self._statement()
        return If(test, then, otherwise)

    # expressions

    def _enter(self) -> None:
        self._depth += 1
        if self._depth > _MAX_NESTING:
            raise RangeSyntaxError("Expression is nested too deeply", self.peek().column)

    def _leave(self) -> None:
        self._depth -= 1

    def expression(self):
        self._enter()
        try:
            return self._conditional()
        finally:
            self._leave()

    def _conditional(self):
        test = self._binary_level(0)
        if self.try_consume("?"):
            then = self.expression()
            self.expect(":")
            otherwise = self.expression()
            return Conditional(test, then, otherwise)
        return test

    _LEVELS: tuple[tuple[str, ...], ...] = (
        ("||",),
        ("&&",),
        ("==", "!=", "===", "!=="),
        ("<", "<=", ">", ">="),
        ("+", "-"),
        ("*", "/", "%"),
    )

    def _binary_level(self, level: int):
        if level >= len(self._LEVELS):
            return self._unary()
        ops = self._LEVELS[level]
        left = self._binary_level(level + 1)
        while self.peek().kind == "op" and self.peek().text in ops:
            op = self.consume().text
            left = Binary(op, left, self._binary_level(level + 1))
        return left

    def _unary(self):
        tok = self.peek()
        if tok.kind == "op" and tok.text in ("-", "+", "!"):
            self.consume()
            self._enter()
            try:
                return Unary(tok.text, self._unary())
            finally:
                self._leave()
        return self._primary()

    def _primary(self):
        tok = self.consume()
        if tok.kind == "num":
            try:
                return Number(float(tok.text) if "." in tok.text else int(tok.text))
            except ValueError as exc:
                raise RangeSyntaxError(f"Invalid number: {exc}", tok.column) from exc
        if tok.kind == "name":
            if tok.text in ("true", "false"):
                return Boolean(tok.text == "true")
            if tok.text == "Math":
                self.expect(".")
                member = self.consume()
                if member.kind != "name":
                    raise RangeSyntaxError("Expected a function name after 'Math.'", member.column)
                return self._call(member.text)
            if tok.text in _RESERVED_WORDS:
                raise RangeSyntaxError(f"Unexpected '{tok.text}'", tok.column)
            if self.at("("):
                return self._call(tok.text)
            return Name(tok.text)
        if tok.kind == "op" and tok.text == "(":
            inner = self.expression()
            self.expect(")")
            return inner
        if tok.kind == "op" and tok.text == "[":
            items = []
            if not self.at("]"):
                items.append(self.expression())
                while self.try_consume(","):
                    items.append(self.expression())
            self.expect("]")
            return ListLiteral(tuple(items))
        raise RangeSyntaxError(f"Unexpected {self._describe(tok)}", tok.column)

    def _call(self, func: str) -> Call:
        self.expect("(")
        args = []
        if not self.at(")"):
            args.append(self.expression())
            while self.try_consume(","):
                args.append(self.expression())
        self.expect(")")
        return Call(func, tuple(args))


# ---------------- evaluation ----------------

Value = Union[int, float, bool, tuple]


def _js_round(value: float) -> int:
    return math.floor(value + 0.5)


_FUNCTIONS: dict[str, Callable[..., Value]] = {
    "min": min,
    "max": max,
    "abs": abs,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": _js_round,
}


class _ReturnSignal(Exception):
    def __init__(self, value: Value | None):
        super().__init__()
        self.value = value


def _number(value: Value, context: str) -> Union[int, float]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    raise RangeEvaluationError(f"{context} expects a number, got a list")


def _truthy(value: Value) -> bool:
    if isinstance(value, tuple):
        return True
    return bool(value) and not (isinstance(value, float) and math.isnan(value))


def _remainder(left: Union[int, float], right: Union[int, float]) -> Union[int, float]:
    if isinstance(left, int) and isinstance(right, int):
        rem = abs(left) % abs(right)
        return rem if left >= 0 else -rem
    return math.fmod(left, right)


class _Interpreter:
    def __init__(self, env: dict[str, Value]):
        self.env = env

    def run(self, program: Block) -> Value | None:
        try:
            self.execute(program)
        except _ReturnSignal as signal:
            return signal.value
        return None

    def execute(self, stmt) -> None:
        if isinstance(stmt, Block):
            for child in stmt.body:
                self.execute(child)
        elif isinstance(stmt, ExprStatement):
            self.evaluate(stmt.expr)
        elif isinstance(stmt, Assign):
            value = self.evaluate(stmt.value)
            if stmt.op != "=":
                if stmt.target not in self.env:
                    raise RangeEvaluationError(f"{stmt.target} is not defined")
                value = self._arith(stmt.op[0], self.env[stmt.target], value)
            self.env[stmt.target] = value
        elif isinstance(stmt, Declare):
            for name, expr in stmt.bindings:
                self.env[name] = self.evaluate(expr) if expr is not None else 0
        elif isinstance(stmt, If):
            if _truthy(self.evaluate(stmt.test)):
                self.execute(stmt.then)
            elif stmt.otherwise is not None:
                self.execute(stmt.otherwise)
        elif isinstance(stmt, Return):
            raise _ReturnSignal(self.evaluate(stmt.value) if stmt.value is not None else None)
        else:
            raise RangeEvaluationError(f"Unsupported statement {type(stmt).__name__}")

    def evaluate(self, node) -> Value:
        if isinstance(node, (Number, Boolean)):
            return node.value
        if isinstance(node, Name):
            if node.ident not in self.env:
                raise RangeEvaluationError(f"{node.ident} is not defined")
            return self.env[node.ident]
        if isinstance(node, ListLiteral):
            return tuple(self.evaluate(item) for item in node.items)
        if isinstance(node, Unary):
            operand = self.evaluate(node.operand)
            if node.op == "!":
                return not _truthy(operand)
            number = _number(operand, f"Unary '{node.op}'")
            return -number if node.op == "-" else number
        if isinstance(node, Conditional):
            branch = node.then if _truthy(self.evaluate(node.test)) else node.otherwise
            return self.evaluate(branch)
        if isinstance(node, Binary):
            return self._binary(node)
        if isinstance(node, Call):
            return self._call(node)
        raise RangeEvaluationError(f"Unsupported expression {type(node).__name__}")

    def _binary(self, node: Binary) -> Value:
        if node.op == "&&":
            left = self.evaluate(node.left)
            return self.evaluate(node.right) if _truthy(left) else left
        if node.op == "||":
            left = self.evaluate(node.left)
            return left if _truthy(left) else self.evaluate(node.right)

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)
        if node.op in ("==", "==="):
            return left == right
        if node.op in ("!=", "!=="):
            return left != right
        if node.op in ("<", "<=", ">", ">="):
            lnum = _number(left, f"Operator '{node.op}'")
            rnum = _number(right, f"Operator '{node.op}'")
            if node.op == "<":
                return lnum < rnum
            if node.op == "<=":
                return lnum <= rnum
            if node.op == ">":
                return lnum > rnum
            return lnum >= rnum
        return self._arith(node.op, left, right)

    @staticmethod
    def _arith(op: str, left: Value, right: Value) -> Value:
        lnum = _number(left, f"Operator '{op}'")
        rnum = _number(right, f"Operator '{op}'")
        if op in ("/", "%") and rnum == 0:
            raise RangeEvaluationError("Division by zero")
        try:
            if op == "+":
                return lnum + rnum
            if op == "-":
                return lnum - rnum
            if op == "*":
                return lnum * rnum
            if op == "/":
                return lnum / rnum
            if op == "%":
                return _remainder(lnum, rnum)
        except (ArithmeticError, ValueError) as exc:
            raise RangeEvaluationError(f"Operator '{op}' failed: {exc}") from exc
        raise RangeEvaluationError(f"Unsupported operator '{op}'")

    def _call(self, node: Call) -> Value:
        func = _FUNCTIONS.get(node.func)
        if func is None:
            raise RangeEvaluationError(f"{node.func} is not a function")
        args = [_number(self.evaluate(arg), f"{node.func}()") for arg in node.args]
        if node.func in ("min", "max"):
            if not args:
                raise RangeEvaluationError(f"{node.func}() needs at least one argument")
            return func(*args)
        if len(args) != 1:
            raise RangeEvaluationError(f"{node.func}() takes exactly one argument")
        value = args[0]
        if node.func != "abs" and not math.isfinite(value):
            raise RangeEvaluationError(f"{node.func}() got a non-finite number")
        return func(value)


def _to_offset(value: Value, label: str) -> int:
    if isinstance(value, tuple) or isinstance(value, bool):
        raise RangeEvaluationError(f"{label} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise RangeEvaluationError(f"{label} must be a finite number")
    return int(math.floor(value))


def _to_pair(value: Value | None, label: str) -> tuple[int, int]:
    if not isinstance(value, tuple) or len(value) != 2:
        raise RangeEvaluationError(f"{label} must evaluate to a [min, max] pair")
    return _to_offset(value[0], f"{label}[0]"), _to_offset(value[1], f"{label}[1]")


class CompiledRangeFn:
    """Callable ``(start, end) -> (start, end)`` built from range function source."""

    __slots__ = ("source", "_program")

    def __init__(self, source: str, program: Block):
        self.source = source
        self._program = program

    def __call__(self, start: int, end: int) -> tuple[int, int]:
        with _contained_failures():
            interpreter = _Interpreter({"start": start, "end": end})
            returned = interpreter.run(self._program)
            if returned is not None:
                return _to_pair(returned, "rangeFn result")
            return (
                _to_offset(interpreter.env.get("start"), "start"),
                _to_offset(interpreter.env.get("end"), "end"),
            )

    def __repr__(self) -> str:
        return f"CompiledRangeFn({self.source!r})"


@contextmanager
def _contained_failures():
    """Re-raise interpreter blowups (deep trees, huge numbers) as evaluation errors."""
    try:
        yield
    except RangeExpressionError:
        raise
    except (ArithmeticError, RecursionError, TypeError, ValueError) as exc:
        raise RangeEvaluationError(f"{type(exc).__name__}: {exc}") from exc


def evaluate_range_fn(source: str) -> CompiledRangeFn:
    """Parse range function source; syntax errors raise immediately."""
    with _contained_failures():
        return CompiledRangeFn(str(source or ""), _Parser(source).parse_program())


def evaluate_clamp(source: str) -> tuple[int, int]:
    with _contained_failures():
        parser = _Parser(source)
        if parser.peek().kind == "eof":
            raise RangeSyntaxError("Expected a clamp expression", 0)
        expr = parser.expression()
        parser.expect_end()
        return _to_pair(_Interpreter({}).evaluate(expr), "clamp")


__all__ = [
    "RangeExpressionError",
    "RangeSyntaxError",
    "RangeEvaluationError",
    "CompiledRangeFn",
    "tokenize",
    "evaluate_range_fn",
    "evaluate_clamp",
]
