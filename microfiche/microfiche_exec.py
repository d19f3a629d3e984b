import asyncio
import functools
import logging
import os
from typing import Optional, Dict

from microfiche.microfiche_datatypes import (
    Handler, Store, EmptyCommand, CommandNotFound, CommandFailed, CommandInputError,
)

logger = logging.getLogger(__name__)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


async def _feed_stdin(stdin: asyncio.StreamWriter, data: bytes):
    """Writes the body to the child and closes its input.

    A child that exits without reading everything closes the pipe on us;
    that is the child's choice, not a failure.
    """
    try:
        if data:
            stdin.write(data)
            await stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        logger.debug("child closed stdin before reading the whole body")
    finally:
        stdin.close()
        try:
            await stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            pass


async def run_command(command_line: str, stdin_text: str = "", *,
                      cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> str:
    """
    Runs `command_line` as a child process and returns its standard output.

    The command line is split on whitespace; there is no quoting. The child
    inherits the environment (with `env` laid over it) and gets pipes for all
    three streams. `stdin_text` is written by a separate task while both
    output streams are drained, so a large body cannot deadlock against a
    child filling its output pipe. The writer is joined before returning and
    its failure becomes this call's failure.
    """
    argv = command_line.split()
    if not argv:
        raise EmptyCommand()
    program = argv[0]

    child_env = None
    if env:
        child_env = {**os.environ, **env}

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=child_env,
        )
    except OSError as e:
        raise CommandNotFound(program, e.strerror or str(e)) from e
    logger.debug("spawned %s (pid %s)", argv, proc.pid)

    writer = asyncio.create_task(_feed_stdin(proc.stdin, stdin_text.encode("utf-8")))
    write_result, stdout, stderr = await asyncio.gather(
        writer, proc.stdout.read(), proc.stderr.read(), return_exceptions=True,
    )
    exit_code = await proc.wait()

    for stream in (stdout, stderr):
        if isinstance(stream, BaseException):
            raise stream
    if isinstance(write_result, BaseException):
        raise CommandInputError(program, str(write_result)) from write_result
    if exit_code != 0:
        raise CommandFailed(program, exit_code, _decode(stderr))
    return _decode(stdout)


async def interpret_exec(store: Store, harg: str, varg: str, *,
                         cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> str:
    return await run_command(harg, varg, cwd=cwd, env=env)


def exec_handler(cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> Handler:
    """Builds the `exec` directive, optionally pinned to a working directory and extra env."""
    return Handler("exec", functools.partial(interpret_exec, cwd=cwd, env=env))

