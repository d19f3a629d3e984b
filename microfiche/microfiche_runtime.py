# microfiche_runtime.py

import copy
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Optional

from microfiche.microfiche_datatypes import Store, Handler, MicroficheError, MalformedBlock
from microfiche.microfiche_reader import iter_blocks, read_block
from microfiche.microfiche_interpreter import Dispatcher
from microfiche.microfiche_exec import exec_handler
from microfiche.microfiche_note import NOTE_DIRECTIVE
from microfiche.microfiche_serialize import store_from_dict

logger = logging.getLogger(__name__)

# ===================================================================
# 1. Directive registration
# ===================================================================


def directive(name: Optional[str] = None):
    """Marks a function or host method as a directive handler.

    The function is called as `fn(store, inline_argument, body)` and returns
    text (or an awaitable of text). Without a name the function's own name
    is used, with a leading underscore dropped.
    """
    def decorate(func):
        func._microfiche_directive = name or func.__name__.lstrip("_")
        return func
    if callable(name):
        func, name = name, None
        return decorate(func)
    return decorate


def as_handler(obj: Any) -> Handler:
    """Accepts a Handler or a @directive-marked callable."""
    if isinstance(obj, Handler):
        return obj
    func = getattr(obj, "__func__", obj)
    directive_name = getattr(func, "_microfiche_directive", None)
    if directive_name is None or not callable(obj):
        raise TypeError(f"Not a directive: {obj!r}")
    return Handler(directive_name, obj)


def builtin_handlers(cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> List[Handler]:
    return [NOTE_DIRECTIVE, exec_handler(cwd=cwd, env=env)]


# ===================================================================
# 2. Document execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of interpreting a document."""
    status: Literal['success', 'error']
    value: str = ""
    error_message: Optional[str] = None
    error_line: Optional[int] = None
    source: Optional[str] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats an error message with its line and a source excerpt."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_line is None:
            return msg
        msg = f"Error on line {self.error_line}: {msg}"
        context = source_context(self.source or "", self.error_line)
        return f"{msg}\n{context}" if context else msg


def source_context(source: str, line: int, radius: int = 2) -> str:
    lines = source.splitlines()
    if not line or line < 1 or line > len(lines):
        return ""
    start = max(1, line - radius)
    end = min(len(lines), line + radius)
    width = len(str(end))
    out = []
    for i in range(start, end + 1):
        prefix = ">" if i == line else " "
        out.append(f"{prefix} {str(i).rjust(width)} | {lines[i - 1]}")
    return "\n".join(out)


class DocumentRunner:
    """Scans, parses, and dispatches the directives of a document."""

    def __init__(self,
                 host_object: Optional[Any] = None,
                 handlers: Iterable[Any] = (),
                 load_builtins: bool = True,
                 data: Optional[Dict[str, Any]] = None,
                 cwd: Optional[str] = None,
                 env: Optional[Dict[str, str]] = None,
                 keep_store: bool = False):
        self.host_object = host_object
        self.handlers = [as_handler(h) for h in handlers]
        self._load_builtins = load_builtins
        self.seed = store_from_dict(data or {})
        self.cwd = cwd
        self.env = dict(env or {})
        self.keep_store = keep_store
        self.source_dir = None  # directory of the current source file, if known

        self.dispatcher = Dispatcher()
        self.side_effects: List[Dict] = []
        self.store: Optional[Store] = None

    def new_store(self) -> Store:
        """Builds a fresh root store: built-ins, extra handlers, host directives, then data."""
        store = Store()
        if self._load_builtins:
            for handler in builtin_handlers(cwd=self.cwd or self.source_dir, env=self.env):
                store.register(handler)
        for handler in self.handlers:
            store.register(handler)
        self._bind_host_directives(store)
        for name, binding in self.seed.items():
            store.bind(name, copy.deepcopy(binding))
        return store

    def _bind_host_directives(self, store: Store):
        """Bind @directive methods of the host into the store."""
        host = self.host_object
        if not host:
            return
        for _, member in inspect.getmembers(host):
            if not callable(member):
                continue
            func = getattr(member, "__func__", member)
            if getattr(func, "_microfiche_directive", None) is None:
                continue
            store.register(as_handler(member))

    def _fail(self, err_msg: str, line: Optional[int], output: List[str], source: str) -> ExecutionResult:
        self.side_effects.append({'topics': ['stderr'], 'message': err_msg})
        return ExecutionResult(
            status='error',
            value="".join(output),
            error_message=err_msg,
            error_line=line,
            source=source,
            side_effects=self.side_effects,
        )

    async def handle_document(self, source: str) -> ExecutionResult:
        """The main entry point to interpret a document."""
        self.side_effects = []
        if self.store is None or not self.keep_store:
            self.store = self.new_store()
        store = self.store
        output: List[str] = []
        line = None
        try:
            for block in iter_blocks(source):
                line = block.line
                # A trailing newline leaves an empty last block; it is not a directive.
                if block.final and block.text == "" and source != "":
                    break
                try:
                    invocation = read_block(block)
                except MalformedBlock as e:
                    line = e.line
                    raise
                try:
                    fragment = await self.dispatcher.dispatch(store, invocation)
                except MalformedBlock as e:
                    # Handlers number body lines from 1; the body starts after the head line.
                    line = block.line + e.line
                    raise MalformedBlock(line, e.text, e.reason) from e
                output.append(fragment)
        except MicroficheError as e:
            logger.debug("interpretation stopped at line %s: %s", line, e)
            return self._fail(str(e), line, output, source)
        except Exception as e:
            logger.exception("unexpected error at line %s", line)
            return self._fail(f"InternalError: {e}", line, output, source)
        return ExecutionResult(status='success', value="".join(output), source=source,
                               side_effects=self.side_effects)


async def interpret(source: str, **options) -> ExecutionResult:
    """Interprets `source` with a fresh runner; `options` go to DocumentRunner."""
    return await DocumentRunner(**options).handle_document(source)


__all__ = [
    "directive",
    "as_handler",
    "builtin_handlers",
    "ExecutionResult",
    "DocumentRunner",
    "interpret",
    "source_context",
]
