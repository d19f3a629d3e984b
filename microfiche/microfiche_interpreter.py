"""
The microfiche dispatcher: resolves an invocation's name in a store and runs
the bound handler.
"""
import inspect
import logging
from typing import Any

from microfiche.microfiche_datatypes import (
    Store, Handler, Data, Module, Invocation, UndefinedDirective, NotInvocable,
)
from microfiche.microfiche_reader import read_head

logger = logging.getLogger(__name__)


class Dispatcher:
    """Maps invocations to handlers.

    A name bound to a Handler runs it. A name bound to a Module is only
    invocable as the first segment of a dotted name (`tools.fmt x`): the
    rest of the head line is read again as a head line and resolved inside
    the nested store. Data bindings are never invocable.
    """

    def __init__(self):
        self.call_stack = []

    async def dispatch(self, store: Store, invocation: Invocation) -> str:
        name = invocation.name
        binding = store.bindings.get(name)
        match binding:
            case None:
                raise UndefinedDirective(name)
            case Handler():
                return await self._call(binding, store, invocation)
            case Module() if invocation.separator == ".":
                inner_name, sep, inner_arg = read_head(invocation.inline_argument)
                inner = Invocation(inner_name, inner_arg, invocation.body, sep, invocation.line)
                self.call_stack.append(name)
                try:
                    return await self.dispatch(binding.store, inner)
                except UndefinedDirective as e:
                    raise UndefinedDirective(f"{name}.{e.name}") from None
                finally:
                    self.call_stack.pop()
            case Data() | Module():
                raise NotInvocable(name, binding)
            case _:
                raise TypeError(f"Unknown binding for {name!r}: {binding!r}")

    async def _call(self, handler: Handler, store: Store, invocation: Invocation) -> str:
        qualified = ".".join([*self.call_stack, handler.name])
        logger.debug("line %d: %s %r", invocation.line, qualified, invocation.inline_argument)
        func = handler.interpret
        if inspect.iscoroutinefunction(func):
            result: Any = await func(store, invocation.inline_argument, invocation.body)
        else:
            result = func(store, invocation.inline_argument, invocation.body)
            if inspect.isawaitable(result):
                result = await result
        if result is None:
            return ""
        if not isinstance(result, str):
            raise TypeError(f"Directive {qualified!r} returned {type(result).__name__}, expected str")
        return result
