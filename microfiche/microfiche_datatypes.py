"""
Defines the core data types for the microfiche runtime.

This module provides the binding store every interpretation run threads
through its handlers, the three binding variants it can hold, the transient
values produced by the reader, and the structured errors raised anywhere in
the pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional, Union
import collections.abc


# =================================================================
# Errors
# =================================================================

class MicroficheError(Exception):
    """Base class for every error an interpretation run can report."""
    kind = "MicroficheError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class UndefinedDirective(MicroficheError):
    kind = "UndefinedDirective"

    def __init__(self, name: str):
        super().__init__(f"Undefined directive {name!r}")
        self.name = name


class NotInvocable(MicroficheError):
    kind = "NotInvocable"

    def __init__(self, name: str, binding: Any = None):
        what = type(binding).__name__.lower() if binding is not None else "binding"
        super().__init__(f"{name!r} is bound to {what}, not a directive")
        self.name = name


class EmptyCommand(MicroficheError):
    kind = "EmptyCommand"

    def __init__(self):
        super().__init__("Empty shell command.")


class MalformedBlock(MicroficheError):
    kind = "MalformedBlock"

    def __init__(self, line: int, text: str, reason: str = "expected four leading spaces"):
        super().__init__(f"line {line}: {reason}: {text!r}")
        self.line = line
        self.text = text
        self.reason = reason


class CommandNotFound(MicroficheError):
    kind = "CommandNotFound"

    def __init__(self, program: str, reason: str = ""):
        detail = f" ({reason})" if reason else ""
        super().__init__(f"cannot execute {program!r}{detail}")
        self.program = program


class CommandFailed(MicroficheError):
    kind = "CommandFailed"

    def __init__(self, program: str, exit_code: int, stderr: str = ""):
        msg = f"{program!r} exited with status {exit_code}"
        if stderr.strip():
            msg = f"{msg}\n{stderr.rstrip()}"
        super().__init__(msg)
        self.program = program
        self.exit_code = exit_code
        self.stderr = stderr


class CommandInputError(MicroficheError):
    kind = "CommandInputError"

    def __init__(self, program: str, reason: str):
        super().__init__(f"failed writing body to {program!r}: {reason}")
        self.program = program


class InvalidName(MicroficheError):
    kind = "InvalidName"

    def __init__(self, name: str):
        super().__init__(f"invalid binding name {name!r}")
        self.name = name


# =================================================================
# Bindings
# =================================================================

HandlerFn = Callable[['Store', str, str], Any]


@dataclass(frozen=True)
class Handler:
    """A named directive implementation: (store, inline_argument, body) -> text."""
    name: str
    interpret: HandlerFn

    def __repr__(self) -> str:
        return f"<handler {self.name}>"


@dataclass
class Data:
    """An opaque string payload bound in a store."""
    payload: str = ""


@dataclass
class Module:
    """A nested store, reached through dotted names."""
    store: 'Store' = field(default_factory=lambda: Store())


Binding = Union[Handler, Data, Module]


def is_valid_name(name: Any) -> bool:
    return isinstance(name, str) and name != "" and "." not in name


class Store:
    """The hierarchical symbol table threaded through one interpretation run.

    Names map to a Handler, a Data payload or a Module holding a nested
    Store. Plain strings and Stores are wrapped on assignment so handlers can
    write `store["x"] = "text"` or `store["pkg"] = Store()` directly.
    """
    def __init__(self, bindings: Optional[Dict[str, Any]] = None):
        self.bindings: Dict[str, Binding] = {}
        for name, value in (bindings or {}).items():
            self[name] = value

    def _normalize_binding(self, value: Any) -> Binding:
        if isinstance(value, (Handler, Data, Module)):
            return value
        if isinstance(value, str):
            return Data(value)
        if isinstance(value, Store):
            return Module(value)
        raise TypeError(f"Cannot bind value of type {type(value).__name__}")

    def __setitem__(self, name: str, value: Any):
        if not is_valid_name(name):
            raise InvalidName(str(name))
        self.bindings[name] = self._normalize_binding(value)

    def __getitem__(self, name: str) -> Binding:
        binding = self.lookup(name)
        if binding is None:
            raise KeyError(f"'{name}'")
        return binding

    def __delitem__(self, name: str):
        if name not in self.bindings:
            raise KeyError(f"'{name}'")
        del self.bindings[name]

    def __contains__(self, name: Any) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.bindings)

    def __len__(self) -> int:
        return len(self.bindings)

    def bind(self, name: str, binding: Any):
        self[name] = binding

    def unbind(self, name: str):
        del self[name]

    def is_bound(self, name: str) -> bool:
        return name in self.bindings

    def register(self, handler: Handler):
        """Binds a handler under its own name."""
        self[handler.name] = handler

    def lookup(self, path: str) -> Optional[Binding]:
        """Resolves a name or a dotted path through nested modules."""
        head, _, rest = path.partition(".")
        binding = self.bindings.get(head)
        if not rest or binding is None:
            return binding
        if isinstance(binding, Module):
            return binding.store.lookup(rest)
        return None

    def keys(self) -> collections.abc.KeysView:
        return self.bindings.keys()

    def items(self) -> collections.abc.ItemsView:
        return self.bindings.items()

    def __eq__(self, other) -> bool:
        return isinstance(other, Store) and self.bindings == other.bindings

    def __repr__(self) -> str:
        return f"Store({', '.join(sorted(self.bindings))})"


# =================================================================
# Reader products
# =================================================================

@dataclass(frozen=True)
class Block:
    """One head line plus its continuation lines, as cut by the scanner."""
    text: str
    line: int = 1
    final: bool = False


@dataclass(frozen=True)
class Invocation:
    """A parsed directive occurrence: (name, inline_argument, body)."""
    name: str
    inline_argument: str = ""
    body: str = ""
    separator: str = ""
    line: int = 1
