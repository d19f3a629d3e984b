import os

import pytest

from microfiche.microfiche_datatypes import Store, EmptyCommand, CommandNotFound, CommandFailed
from microfiche.microfiche_exec import run_command, interpret_exec, exec_handler


@pytest.mark.asyncio
async def test_echo_output_is_returned():
    assert await interpret_exec(Store(), "echo hi", "") == "hi\n"


@pytest.mark.asyncio
async def test_body_is_piped_to_stdin():
    assert await interpret_exec(Store(), "cat", "line1\nline2\n") == "line1\nline2\n"


@pytest.mark.asyncio
async def test_arguments_split_on_whitespace():
    assert await run_command("echo   a \t b") == "a b\n"


@pytest.mark.asyncio
@pytest.mark.parametrize("command", ["", "   "])
async def test_empty_command(command):
    with pytest.raises(EmptyCommand):
        await run_command(command, "anything")


@pytest.mark.asyncio
async def test_missing_program():
    with pytest.raises(CommandNotFound) as exc:
        await run_command("definitely-not-a-real-program-4242")
    assert exc.value.program == "definitely-not-a-real-program-4242"


@pytest.mark.asyncio
async def test_program_without_shebang_is_not_runnable(tmp_path):
    script = tmp_path / "noshebang"
    script.write_bytes(b"\x00\x01\x02 not an executable\n")
    script.chmod(0o755)
    with pytest.raises(CommandNotFound) as exc:
        await run_command(str(script))
    assert exc.value.program == str(script)


@pytest.mark.asyncio
async def test_nonzero_exit_reports_code_and_stderr():
    with pytest.raises(CommandFailed) as exc:
        await run_command("sh", "echo oops >&2\nexit 3\n")
    assert exc.value.exit_code == 3
    assert exc.value.stderr == "oops\n"


@pytest.mark.asyncio
async def test_large_body_does_not_deadlock():
    body = "x" * 100 + "\n"
    body = body * 20000
    assert await run_command("cat", body) == body


@pytest.mark.asyncio
async def test_child_may_ignore_most_of_its_input():
    body = ("y" * 1000 + "\n") * 2000
    assert await run_command("head -c 3", body) == "yyy"


@pytest.mark.asyncio
async def test_cwd_and_env(tmp_path):
    handler = exec_handler(cwd=str(tmp_path), env={"MICROFICHE_TEST": "yes"})
    out = await handler.interpret(Store(), "pwd", "")
    assert os.path.realpath(out.strip()) == os.path.realpath(str(tmp_path))
    assert await handler.interpret(Store(), "printenv MICROFICHE_TEST", "") == "yes\n"
