"""
The block scanner and invocation parser.

A document is a sequence of directive blocks. A block is one head line
followed by any lines that start with a space. The head line names the
directive and carries its inline argument; the continuation lines, dedented
by a fixed four-space margin, form its body.
"""
import string
from typing import Iterator

from microfiche.microfiche_datatypes import Block, Invocation, MalformedBlock

BODY_INDENT = "    "

_PUNCTUATION = frozenset(string.punctuation)


def is_separator(ch: str) -> bool:
    """True for the characters that end a directive name."""
    return ch.isspace() or ch in _PUNCTUATION


def iter_blocks(text: str) -> Iterator[Block]:
    """Lazily partitions `text` into directive blocks.

    Joining the yielded block texts with newlines reproduces `text` exactly.
    Nothing past the current block is examined until the consumer asks for
    the next one.
    """
    remaining = text
    current = []
    start_line = 1
    line_no = 1
    while True:
        pos = remaining.find("\n")
        if pos == -1:
            current.append(remaining)
            yield Block("".join(current), start_line, final=True)
            return
        if remaining[pos + 1:].startswith(" "):
            current.append(remaining[:pos + 1])
        else:
            current.append(remaining[:pos])
            yield Block("".join(current), start_line)
            current = []
            start_line = line_no + 1
        remaining = remaining[pos + 1:]
        line_no += 1


def read_head(head: str) -> tuple[str, str, str]:
    """Splits a head line into (name, separator, inline_argument)."""
    for pos, ch in enumerate(head):
        if is_separator(ch):
            return head[:pos], ch, head[pos + 1:]
    return head, "", ""


def read_invocation(block: str, line: int = 1) -> Invocation:
    """Parses one block into an Invocation.

    Raises MalformedBlock when a body line lacks the four-space margin.
    """
    head, newline, rest = block.partition("\n")
    name, sep, inline_argument = read_head(head)

    body = []
    if newline and rest:
        lines = rest.split("\n")
        if lines[-1] == "":
            lines.pop()
        for offset, body_line in enumerate(lines, start=1):
            if body_line.endswith("\r"):
                body_line = body_line[:-1]
            if not body_line.startswith(BODY_INDENT):
                raise MalformedBlock(line + offset, body_line)
            body.append(body_line[len(BODY_INDENT):] + "\n")

    return Invocation(name, inline_argument, "".join(body), sep, line)


def read_block(block: Block) -> Invocation:
    return read_invocation(block.text, block.line)
