"""Async tree-walking interpreter for sheetscript programs.

Statements run strictly in order.  Built-in calls are the only points
where a script can suspend: coroutine built-ins (and any awaitable a sync
built-in returns) are awaited before the calling statement continues, so
several scripts may share an event loop without interleaving within one
script.

Function calls dispatch to user-defined functions first and then to the
built-in registry.  ``return`` and ``exit`` unwind through private
signals that never escape :meth:`Interpreter.execute`.
"""

from __future__ import annotations

import asyncio
import inspect
import sys
import time
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import sheetscript.functions.book  # noqa: F401
import sheetscript.functions.core  # noqa: F401
import sheetscript.functions.io  # noqa: F401
import sheetscript.functions.lookup  # noqa: F401
import sheetscript.functions.math  # noqa: F401
import sheetscript.functions.sheet  # noqa: F401
import sheetscript.functions.string  # noqa: F401
from sheetscript import ast
from sheetscript.config import DEFAULT_CONFIG
from sheetscript.environment import Environment
from sheetscript.errors import (
    BoundsError,
    FormulaOperationError,
    InvalidArgumentsError,
    ScriptError,
    ScriptParseError,
    ScriptRuntimeError,
    SheetOperationError,
    TypeMismatchError,
    UnknownIdentifierError,
    UnsupportedFeatureError,
    describe,
)
from sheetscript.formulas import FormulaError
from sheetscript.functions.registry import Builtin, BuiltinContext, get_builtin
from sheetscript.logging import EventType, emit_error, emit_info
from sheetscript.logging.events import (
    PARSE_ERROR,
    SCRIPT_RUNTIME_ERROR,
    SHEET_IO_ERROR,
    UNSUPPORTED_FEATURE,
)
from sheetscript.parser import parse
from sheetscript.tabular.book import Book, BookRegistry
from sheetscript.tabular.cells import from_cell
from sheetscript.tabular.errors import SheetError, SheetIOError
from sheetscript.tabular.markdown import MarkdownError
from sheetscript.values import SheetRef, apply_binary, apply_unary, is_number, is_truthy, type_name

_WRAPPED_ERRORS = (SheetError, MarkdownError)
_FLOAT_STEP_TOLERANCE = 1e-9
# Python frames consumed per nested script call, with block statements in the body.
_FRAMES_PER_CALL = 60


class _ReturnSignal(Exception):
    """Unwinds a function body on ``return`` / ``exit function``."""

    def __init__(self, value: Any) -> None:
        super().__init__()
        self.value = value


class _BreakSignal(Exception):
    """Unwinds to the innermost loop of *kind* on ``exit for`` / ``exit while``."""

    def __init__(self, kind: str, line: int) -> None:
        super().__init__()
        self.kind = kind
        self.line = line


@dataclass
class ExecutionResult:
    """Outcome of running a program.

    Attributes:
        environment: The environment after execution (partially updated
            when the run failed).
        error: The error that stopped the run, or ``None`` on success.
        output: Everything written by ``print`` during the run.
        run_id: Id used to attribute the run's log events.
    """

    environment: Environment
    error: ScriptError | None = None
    output: str = ""
    run_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> ExecutionResult:
        """Re-raise the stored error, if any; otherwise return ``self``."""
        if self.error is not None:
            raise self.error
        return self


def _error_code(exc: ScriptError) -> str:
    if isinstance(exc, ScriptParseError):
        return PARSE_ERROR
    if isinstance(exc, UnsupportedFeatureError):
        return UNSUPPORTED_FEATURE
    if isinstance(exc, SheetOperationError) and isinstance(exc.cause, SheetIOError):
        return SHEET_IO_ERROR
    return SCRIPT_RUNTIME_ERROR


def _ensure_recursion_limit(max_depth: int) -> None:
    """Raise the interpreter recursion limit so *max_depth* nested calls fit."""
    needed = max_depth * _FRAMES_PER_CALL + 1000
    if sys.getrecursionlimit() < needed:
        sys.setrecursionlimit(needed)


def _position(length: int, index: Any, line: int) -> int:
    """Resolve a 0-based index (negative counts from the end)."""
    if isinstance(index, bool) or not isinstance(index, int):
        raise TypeMismatchError(f"Index must be an int, got {type_name(index)}", line)
    pos = index + length if index < 0 else index
    if not 0 <= pos < length:
        raise BoundsError(f"Index {index} out of bounds for length {length}", line)
    return pos


class Interpreter:
    """Executes parsed programs against a Book.

    One interpreter may run several programs, sequentially or as
    concurrent tasks; each run gets its own call stack and output buffer
    while sharing the Book.

    Args:
        book: Book that sheet built-ins read and write.  A new one named
            by the ``default_book_name`` setting is created when omitted.
        output: Optional callable that receives ``print`` text as it is
            written, in addition to the captured :attr:`ExecutionResult.output`.
        config: Settings merged over :data:`~sheetscript.config.DEFAULT_CONFIG`.
        registry: Shared books that ``book_merge`` can pull sheets from.
    """

    def __init__(
        self,
        book: Book | None = None,
        *,
        output: Any = None,
        config: Mapping[str, Any] | None = None,
        registry: BookRegistry | None = None,
    ) -> None:
        self.config: dict[str, Any] = {**DEFAULT_CONFIG, **(config or {})}
        self.book = book if book is not None else Book(self.config["default_book_name"])
        self.output = output
        self.registry = registry

    async def execute(
        self,
        program: ast.Program,
        environment: Environment | Mapping[str, Any] | None = None,
    ) -> ExecutionResult:
        """Run *program*; script errors are returned, not raised.

        Args:
            program: Parsed program.
            environment: Starting environment (or a mapping of globals).

        Returns:
            The final environment plus the error that stopped the run, if any.
        """
        if not isinstance(environment, Environment):
            environment = Environment(environment)
        run = _Run(self, environment)
        started = time.perf_counter()
        emit_info(
            EventType.script_started,
            f"Script started ({len(program.statements)} statements)",
            {"statements": len(program.statements), "book": self.book.name},
            run_id=run.run_id,
        )
        try:
            await run.run_program(program)
        except ScriptError as exc:
            context = describe(exc)
            if isinstance(exc, (SheetOperationError, FormulaOperationError)):
                context["cause_type"] = exc.kind
            emit_error(
                EventType.script_failed,
                f"Script failed: {exc}",
                context,
                error_code=_error_code(exc),
                run_id=run.run_id,
            )
            return ExecutionResult(environment, exc, run.text(), run.run_id)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
        emit_info(
            EventType.script_completed,
            f"Script completed in {elapsed_ms} ms",
            {"statements": len(program.statements), "elapsed_ms": elapsed_ms},
            run_id=run.run_id,
        )
        return ExecutionResult(environment, None, run.text(), run.run_id)

    async def run(
        self, text: str, environment: Environment | Mapping[str, Any] | None = None
    ) -> ExecutionResult:
        """Parse and execute script text.

        A parse failure is returned as the result's error and nothing runs.
        """
        try:
            program = parse(text)
        except ScriptParseError as exc:
            emit_error(
                EventType.parse_failed,
                f"Parse failed: {exc}",
                describe(exc),
                error_code=PARSE_ERROR,
            )
            if not isinstance(environment, Environment):
                environment = Environment(environment)
            return ExecutionResult(environment, exc)
        return await self.execute(program, environment)


class _Run:
    """State of one program execution: environment, functions, call depth."""

    def __init__(self, interpreter: Interpreter, environment: Environment) -> None:
        self.env = environment
        self.book = interpreter.book
        self.functions: dict[str, ast.FunctionDef] = {}
        self.depth = 0
        self.run_id = uuid.uuid4().hex[:12]
        self.max_loop = interpreter.config.get("max_loop_iterations")
        self.max_depth = interpreter.config.get("max_call_depth") or DEFAULT_CONFIG["max_call_depth"]
        _ensure_recursion_limit(self.max_depth)
        self._chunks: list[str] = []
        self._forward = interpreter.output
        self.ctx = BuiltinContext(
            book=interpreter.book,
            config=interpreter.config,
            write=self._write,
            run_id=self.run_id,
            registry=interpreter.registry,
        )

    def _write(self, text: str) -> None:
        self._chunks.append(text)
        if self._forward is not None:
            self._forward(text)

    def text(self) -> str:
        return "".join(self._chunks)

    async def run_program(self, program: ast.Program) -> None:
        self.functions.update(program.functions())
        try:
            await self._run_block(program.statements)
        except _BreakSignal as signal:
            raise ScriptRuntimeError(f"exit {signal.kind} outside a {signal.kind} loop", signal.line) from None

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    async def _run_block(self, statements: Iterable[ast.Statement]) -> None:
        for stmt in statements:
            await self._exec(stmt)

    async def _scoped_block(self, statements: Iterable[ast.Statement]) -> None:
        with self.env.scope():
            await self._run_block(statements)

    async def _exec(self, stmt: ast.Statement) -> None:
        try:
            if isinstance(stmt, ast.ExprStatement):
                await self._eval(stmt.expr)
            elif isinstance(stmt, ast.Assign):
                await self._assign(stmt)
            elif isinstance(stmt, ast.Dim):
                value = await self._eval(stmt.value) if stmt.value is not None else None
                self.env.declare(stmt.name, value)
            elif isinstance(stmt, ast.If):
                await self._exec_if(stmt)
            elif isinstance(stmt, ast.ForRange):
                await self._exec_for_range(stmt)
            elif isinstance(stmt, ast.ForEach):
                await self._exec_for_each(stmt)
            elif isinstance(stmt, ast.While):
                await self._exec_while(stmt)
            elif isinstance(stmt, ast.FunctionDef):
                self.functions[stmt.name.lower()] = stmt
            elif isinstance(stmt, ast.Return):
                if self.depth == 0:
                    raise ScriptRuntimeError("return outside a function", stmt.line)
                value = await self._eval(stmt.value) if stmt.value is not None else None
                raise _ReturnSignal(value)
            elif isinstance(stmt, ast.Exit):
                if stmt.kind == "function":
                    if self.depth == 0:
                        raise ScriptRuntimeError("exit function outside a function", stmt.line)
                    raise _ReturnSignal(None)
                raise _BreakSignal(stmt.kind, stmt.line)
            else:
                raise ScriptRuntimeError(f"Unknown statement: {type(stmt).__name__}", stmt.line)
        except ScriptError as exc:
            raise exc.with_line(stmt.line)

    async def _exec_if(self, stmt: ast.If) -> None:
        for condition, body in stmt.branches:
            if is_truthy(await self._eval(condition)):
                await self._scoped_block(body)
                return
        if stmt.else_body is not None:
            await self._scoped_block(stmt.else_body)

    def _tick(self, count: int, line: int) -> int:
        count += 1
        if self.max_loop is not None and count > self.max_loop:
            raise ScriptRuntimeError(f"Loop exceeded {self.max_loop} iterations", line)
        return count

    async def _exec_for_range(self, stmt: ast.ForRange) -> None:
        start = await self._eval(stmt.start)
        end = await self._eval(stmt.end)
        step = await self._eval(stmt.step) if stmt.step is not None else 1
        for bound in (start, end, step):
            if not is_number(bound):
                raise TypeMismatchError(f"for loop bounds must be numbers, got {type_name(bound)}")
        if step == 0:
            raise ScriptRuntimeError("for loop step must be non-zero")
        integral = all(isinstance(b, int) for b in (start, end, step))
        # Float steps accumulate rounding error; values this close to the end count as the end.
        slack = 0 if integral else abs(step) * _FLOAT_STEP_TOLERANCE

        count = 0
        with self.env.scope():
            while True:
                value = start + count * step
                if not integral:
                    value = float(value)
                    if abs(value - end) <= slack:
                        value = float(end)
                if (step > 0 and value > end) or (step < 0 and value < end):
                    break
                count = self._tick(count, stmt.line)
                self.env.declare(stmt.var, value)
                try:
                    await self._run_block(stmt.body)
                except _BreakSignal as signal:
                    if signal.kind != "for":
                        raise
                    break

    async def _exec_for_each(self, stmt: ast.ForEach) -> None:
        iterable = await self._eval(stmt.iterable)
        if isinstance(iterable, list):
            items = list(iterable)
        elif isinstance(iterable, str):
            items = list(iterable)
        elif isinstance(iterable, SheetRef):
            sheet = self._resolve(iterable, stmt.line)
            items = [[from_cell(c) for c in row] for row in sheet.iter_rows()]
        else:
            raise TypeMismatchError(f"Cannot iterate over {type_name(iterable)}")

        count = 0
        with self.env.scope():
            for item in items:
                count = self._tick(count, stmt.line)
                self.env.declare(stmt.var, item)
                try:
                    await self._run_block(stmt.body)
                except _BreakSignal as signal:
                    if signal.kind != "for":
                        raise
                    break

    async def _exec_while(self, stmt: ast.While) -> None:
        count = 0
        with self.env.scope():
            while is_truthy(await self._eval(stmt.condition)):
                count = self._tick(count, stmt.line)
                try:
                    await self._run_block(stmt.body)
                except _BreakSignal as signal:
                    if signal.kind != "while":
                        raise
                    break

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    async def _target_path(self, target: ast.Variable | ast.Index) -> tuple[str, list[Any]]:
        """Evaluate an assignment target to its variable name and index chain."""
        exprs = []
        node: ast.Expression = target
        while isinstance(node, ast.Index):
            exprs.append(node.index)
            node = node.target
        if not isinstance(node, ast.Variable):
            raise ScriptRuntimeError("Invalid assignment target", target.line)
        indexes = [await self._eval(e) for e in reversed(exprs)]
        return node.name, indexes

    def _replace(self, container: Any, indexes: list[Any], value: Any, line: int) -> Any:
        if not indexes:
            return value
        if not isinstance(container, list):
            raise TypeMismatchError(f"Cannot assign into {type_name(container)}", line)
        pos = _position(len(container), indexes[0], line)
        updated = list(container)
        updated[pos] = self._replace(container[pos], indexes[1:], value, line)
        return updated

    def _read_path(self, name: str, indexes: list[Any], line: int) -> Any:
        value = self.env.get(name, line)
        for index in indexes:
            if not isinstance(value, list):
                raise TypeMismatchError(f"Cannot index {type_name(value)}", line)
            value = value[_position(len(value), index, line)]
        return value

    def _write_path(self, name: str, indexes: list[Any], value: Any, line: int) -> None:
        if indexes:
            # Arrays behave as values: the path is rebuilt rather than mutated.
            value = self._replace(self.env.get(name, line), indexes, value, line)
        self.env.assign(name, value)

    async def _assign(self, stmt: ast.Assign) -> None:
        name, indexes = await self._target_path(stmt.target)
        value = await self._eval(stmt.value)
        self._write_path(name, indexes, value, stmt.line)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    async def _eval(self, node: ast.Expression) -> Any:
        try:
            if isinstance(node, ast.Literal):
                return node.value
            if isinstance(node, ast.Variable):
                return self.env.get(node.name, node.line)
            if isinstance(node, ast.Binary):
                if node.op == "and":
                    return is_truthy(await self._eval(node.left)) and is_truthy(
                        await self._eval(node.right)
                    )
                if node.op == "or":
                    return is_truthy(await self._eval(node.left)) or is_truthy(
                        await self._eval(node.right)
                    )
                left = await self._eval(node.left)
                right = await self._eval(node.right)
                return apply_binary(node.op, left, right)
            if isinstance(node, ast.Unary):
                return apply_unary(node.op, await self._eval(node.operand))
            if isinstance(node, ast.Call):
                return await self._call(node)
            if isinstance(node, ast.Index):
                return await self._index(node)
            if isinstance(node, ast.ArrayLiteral):
                return [await self._eval(item) for item in node.items]
            raise ScriptRuntimeError(f"Unknown expression: {type(node).__name__}", node.line)
        except ScriptError as exc:
            raise exc.with_line(node.line)

    def _resolve(self, ref: SheetRef, line: int):
        try:
            return self.book.resolve(ref)
        except SheetError as exc:
            raise SheetOperationError(exc, line) from exc

    async def _index(self, node: ast.Index) -> Any:
        container = await self._eval(node.target)
        index = await self._eval(node.index)
        if isinstance(container, (list, str)):
            return container[_position(len(container), index, node.line)]
        if isinstance(container, SheetRef):
            sheet = self._resolve(container, node.line)
            pos = _position(sheet.row_count(), index, node.line)
            return [from_cell(c) for c in sheet.row(pos)]
        raise TypeMismatchError(f"Cannot index {type_name(container)}", node.line)

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def _call(self, node: ast.Call) -> Any:
        function = self.functions.get(node.name.lower())
        if function is not None:
            return await self._call_user(function, node)
        builtin = get_builtin(node.name)
        if builtin is None:
            raise UnknownIdentifierError(node.name, node.line, kind="function")
        args = [await self._eval(arg) for arg in node.args]
        return await self._call_builtin(builtin, args, node.line)

    async def _call_builtin(self, builtin: Builtin, args: list[Any], line: int) -> Any:
        self.ctx.line = line
        try:
            result = builtin.func(self.ctx, args)
            if inspect.isawaitable(result):
                result = await result
        except ScriptError as exc:
            raise exc.with_line(line)
        except FormulaError as exc:
            raise FormulaOperationError(exc, line) from exc
        except _WRAPPED_ERRORS as exc:
            raise SheetOperationError(exc, line) from exc
        return result

    async def _bind(
        self, function: ast.FunctionDef, node: ast.Call
    ) -> tuple[dict[str, Any], list[tuple[str, str, list[Any]]]]:
        """Evaluate call arguments into parameter bindings.

        Returns:
            The bindings plus ``(param, variable, indexes)`` triples for
            ByRef parameters to write back after the call.
        """
        params = function.params
        args = node.args
        fixed = [p for p in params if not p.is_rest]
        has_rest = len(fixed) != len(params)
        required = sum(1 for p in fixed if not p.is_optional)
        if len(args) < required or (not has_rest and len(args) > len(fixed)):
            if has_rest:
                expected = f"at least {required} arguments"
            elif required == len(fixed):
                expected = f"{required} argument{'s' if required != 1 else ''}"
            else:
                expected = f"{required} to {len(fixed)} arguments"
            raise InvalidArgumentsError(function.name, expected, node.line, detail=f"got {len(args)}")

        bindings: dict[str, Any] = {}
        writebacks: list[tuple[str, str, list[Any]]] = []
        for i, param in enumerate(params):
            if param.is_rest:
                bindings[param.name] = [await self._eval(arg) for arg in args[i:]]
                break
            if i >= len(args):
                default = param.default
                bindings[param.name] = await self._eval(default) if default is not None else None
                continue
            arg = args[i]
            if param.mode == "byref" and isinstance(arg, (ast.Variable, ast.Index)):
                name, indexes = await self._target_path(arg)
                bindings[param.name] = self._read_path(name, indexes, arg.line)
                writebacks.append((param.name, name, indexes))
            else:
                bindings[param.name] = await self._eval(arg)
        return bindings, writebacks

    async def _call_user(self, function: ast.FunctionDef, node: ast.Call) -> Any:
        if self.depth >= self.max_depth:
            raise ScriptRuntimeError(
                f"Maximum call depth ({self.max_depth}) exceeded calling {function.name}", node.line
            )
        bindings, writebacks = await self._bind(function, node)
        self.depth += 1
        try:
            with self.env.call_frame(bindings) as frame:
                try:
                    await self._run_block(function.body)
                    result = None
                except _ReturnSignal as signal:
                    result = signal.value
                except _BreakSignal as signal:
                    raise ScriptRuntimeError(
                        f"exit {signal.kind} outside a {signal.kind} loop", signal.line
                    ) from None
                final = {param: frame.get(param) for param, _, _ in writebacks}
        except RecursionError:
            raise ScriptRuntimeError(
                f"Maximum recursion depth exceeded calling {function.name}", node.line
            ) from None
        finally:
            self.depth -= 1
        for param, name, indexes in writebacks:
            self._write_path(name, indexes, final[param], node.line)
        return result


# ---------------------------------------------------------------------------
# Module-level entry points
# ---------------------------------------------------------------------------


async def execute(
    program: ast.Program,
    environment: Environment | Mapping[str, Any] | None = None,
    *,
    book: Book | None = None,
    config: Mapping[str, Any] | None = None,
    output: Any = None,
    registry: BookRegistry | None = None,
) -> ExecutionResult:
    """Execute *program* on a fresh :class:`Interpreter`."""
    interpreter = Interpreter(book, output=output, config=config, registry=registry)
    return await interpreter.execute(program, environment)


def run_script(
    text: str,
    environment: Environment | Mapping[str, Any] | None = None,
    *,
    book: Book | None = None,
    config: Mapping[str, Any] | None = None,
    output: Any = None,
    registry: BookRegistry | None = None,
) -> ExecutionResult:
    """Parse and run *text* to completion with :func:`asyncio.run`.

    Must not be called from a running event loop; use
    :meth:`Interpreter.run` there instead.
    """
    interpreter = Interpreter(book, output=output, config=config, registry=registry)
    return asyncio.run(interpreter.run(text, environment))
