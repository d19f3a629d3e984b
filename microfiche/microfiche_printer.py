"""
A pretty-printer for microfiche stores, writing them back as `note` syntax.
"""
from microfiche.microfiche_datatypes import Store, Handler, Data, Module, Invocation
from microfiche.microfiche_reader import BODY_INDENT


class Printer:
    """Formats stores and bindings into document text."""

    def __init__(self, indent=BODY_INDENT):
        self._indent = indent
        self._handlers = {
            Store: self._pformat_store,
            Module: self._pformat_module,
            Data: self._pformat_data,
            Handler: self._pformat_handler,
            Invocation: self._pformat_invocation,
        }

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            return repr(obj)
        return handler(obj, level)

    def pformat_note(self, name: str, store: Store) -> str:
        """A `note` directive holding the data in `store` under `name`.

        The dump is lossy where `note` cannot express a payload: entries
        always read back ending in exactly one newline, and text whose
        unindented lines are all `key:` lines reads back as a module.
        Other newline-terminated text reads back unchanged.
        """
        return f"note {name}:\n" + self._pformat_store(store, 1)

    def _pad(self, level):
        return self._indent * level

    def _pformat_store(self, store: Store, level):
        parts = []
        for name, binding in store.items():
            if isinstance(binding, Handler):
                continue
            parts.append(f"{self._pad(level)}{name}:\n")
            parts.append(self.pformat(binding, level + 1))
        return "".join(parts)

    def _pformat_module(self, module: Module, level):
        return self._pformat_store(module.store, level)

    def _pformat_data(self, data: Data, level):
        # Blank lines keep their indentation so they stay inside the block.
        pad = self._pad(level)
        return "".join(f"{pad}{line}\n" for line in data.payload.splitlines())

    def _pformat_handler(self, handler: Handler, level):
        return f"{self._pad(level)}<directive {handler.name}>\n"

    def _pformat_invocation(self, inv: Invocation, level):
        head = inv.name
        if inv.separator or inv.inline_argument:
            head += (inv.separator or " ") + inv.inline_argument
        body = "".join(f"{self._indent}{line}\n" for line in inv.body.splitlines())
        return self._pad(level) + head + ("\n" + body.rstrip("\n") if body else "")
