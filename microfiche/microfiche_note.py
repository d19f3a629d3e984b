"""
The `note` directive: captures an indented tree of text under a name.

    note dot_files:
        bashrc:
            #!/bin/bash
            export EDITOR=vim
        vimrc:
            set nocompatible

binds `dot_files` to a module holding two data entries, `bashrc` and
`vimrc`, each the dedented text under its key. A body whose unindented
lines are not all `key:` lines is captured whole as a single data entry.
"""
import logging
from typing import List, Tuple

from microfiche.microfiche_datatypes import (
    Store, Data, Module, Binding, Handler, MalformedBlock, InvalidName, is_valid_name,
)
from microfiche.microfiche_reader import BODY_INDENT

logger = logging.getLogger(__name__)


def _key_of(line: str) -> str | None:
    """Returns the key of a `key:` line, or None if the line is not one."""
    if not line.endswith(":"):
        return None
    key = line[:-1]
    if not is_valid_name(key) or any(ch.isspace() for ch in key):
        return None
    return key


def _split_entries(lines: List[str], first_line: int) -> List[Tuple[str, List[str], int]] | None:
    """Groups lines into (key, owned lines, line number) entries.

    Returns None when the lines do not form a key tree.
    """
    entries = []
    for offset, line in enumerate(lines):
        if line.startswith(" ") or line == "":
            if not entries:
                if line == "":
                    continue
                return None
            entries[-1][1].append(line)
            continue
        key = _key_of(line)
        if key is None:
            return None
        entries.append((key, [], first_line + offset))
    return entries or None


def _dedent(lines: List[str], first_line: int) -> List[str]:
    out = []
    for offset, line in enumerate(lines):
        if line == "":
            out.append("")
        elif line.startswith(BODY_INDENT):
            out.append(line[len(BODY_INDENT):])
        else:
            raise MalformedBlock(first_line + offset, line, "note entry needs four more spaces")
    while out and out[-1] == "":
        out.pop()
    return out


def build_binding(text: str, first_line: int = 1) -> Binding:
    """Turns note text into a Module when it is a key tree, Data otherwise.

    `first_line` is the number of the first line of `text`; MalformedBlock
    errors count lines of the note body, starting at 1.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    entries = _split_entries(lines, first_line)
    if entries is None:
        return Data(text)
    store = Store()
    for key, owned, key_line in entries:
        inner = _dedent(owned, key_line + 1)
        inner_text = "".join(line + "\n" for line in inner)
        store[key] = build_binding(inner_text, key_line + 1)
    return Module(store)


async def interpret_note(store: Store, harg: str, varg: str) -> str:
    name = harg.strip()
    if name.endswith(":"):
        name = name[:-1]
    if not is_valid_name(name) or any(ch.isspace() for ch in name):
        raise InvalidName(name)
    binding = build_binding(varg)
    store[name] = binding
    logger.debug("note %s -> %s", name, type(binding).__name__)
    return ""


NOTE_DIRECTIVE = Handler("note", interpret_note)
