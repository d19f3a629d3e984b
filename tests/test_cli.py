import json

import pytest

from microfiche.microfiche_cli import main


def _run(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_eval_prints_output(capsys):
    assert _run(["eval", "exec echo hi"]) == 0
    out, err = capsys.readouterr()
    assert out == "hi\n"
    assert err == ""


def test_interpret_file(tmp_path, capsys):
    doc = tmp_path / "notes.md"
    doc.write_text("exec cat\n    inlined\nexec ls\n", encoding="utf-8")
    assert _run(["interpret", str(doc)]) == 0
    out, _ = capsys.readouterr()
    assert out == "inlined\nnotes.md\n"


def test_missing_file(tmp_path, capsys):
    assert _run(["interpret", str(tmp_path / "nope.md")]) == 1
    _, err = capsys.readouterr()
    assert "file not found" in err


def test_directory_is_not_readable(tmp_path, capsys):
    assert _run(["interpret", str(tmp_path)]) == 1
    _, err = capsys.readouterr()
    assert f"Error: cannot read {tmp_path}" in err


def test_non_utf8_file(tmp_path, capsys):
    doc = tmp_path / "latin1.md"
    doc.write_bytes(b"exec echo caf\xe9\n")
    assert _run(["interpret", str(doc)]) == 1
    _, err = capsys.readouterr()
    assert "cannot read" in err
    assert "Traceback" not in err


def test_error_keeps_partial_output(capsys):
    assert _run(["eval", "exec echo one\nfrobnicate"]) == 1
    out, err = capsys.readouterr()
    assert out == "one\n"
    assert "Error on line 2: UndefinedDirective" in err


def test_seed_data_and_dump(tmp_path, capsys):
    seed = tmp_path / "seed.yaml"
    seed.write_text("greeting: hello\n", encoding="utf-8")
    code = _run(["--data", str(seed), "--dump-store", "json", "eval", "note other\n    x"])
    assert code == 0
    _, err = capsys.readouterr()
    assert json.loads(err) == {"greeting": "hello", "other": "x\n"}


def test_bad_seed_file(tmp_path, capsys):
    seed = tmp_path / "seed.txt"
    seed.write_text("x", encoding="utf-8")
    assert _run(["--data", str(seed), "eval", "exec true"]) == 1
    _, err = capsys.readouterr()
    assert "cannot load" in err


def test_dump_store_as_note(capsys):
    assert _run(["--dump-store", "note", "eval", "note pkg\n    a:\n        1"]) == 0
    _, err = capsys.readouterr()
    assert err == "pkg:\n    a:\n        1\n"
