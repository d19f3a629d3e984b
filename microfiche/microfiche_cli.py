"""microfiche command line.

    microfiche interpret NOTES.md
    microfiche eval 'exec echo hi'
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml

from microfiche.microfiche_datatypes import MicroficheError
from microfiche.microfiche_runtime import DocumentRunner
from microfiche.microfiche_serialize import load_data_file, serialize
from microfiche.microfiche_printer import Printer

DUMP_FORMATS = ("note", "json", "yaml", "toml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="microfiche",
        description="Expand the meta-directives embedded in a document",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--data", "-d",
        action="append",
        default=[],
        metavar="FILE",
        help="Seed the store from a .json, .yaml or .toml file (repeatable)",
    )
    parser.add_argument("--cwd", help="Working directory for exec (default: the document's directory)")
    parser.add_argument(
        "--dump-store",
        choices=DUMP_FORMATS,
        help="Write the final store to stderr in this format",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    p_interpret = sub.add_parser("interpret", help="Interpret a document file")
    p_interpret.add_argument("filepath")
    p_eval = sub.add_parser("eval", help="Interpret a document given on the command line")
    p_eval.add_argument("source")
    return parser


def dump_store(runner: DocumentRunner, fmt: str) -> str:
    if fmt == "note":
        return Printer().pformat(runner.store)
    return serialize(runner.store, fmt=fmt)


async def run(args) -> int:
    runner = DocumentRunner(cwd=args.cwd)
    for path in args.data:
        try:
            load_data_file(path, runner.seed)
        except (OSError, ValueError, yaml.YAMLError, MicroficheError) as e:
            print(f"Error: cannot load {path}: {e}", file=sys.stderr)
            return 1

    if args.command == "interpret":
        p = Path(args.filepath)
        try:
            source = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            print(f"Error: file not found: {args.filepath}", file=sys.stderr)
            return 1
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error: cannot read {args.filepath}: {e}", file=sys.stderr)
            return 1
        runner.source_dir = str(p.parent.resolve())
    else:
        source = args.source

    result = await runner.handle_document(source)
    sys.stdout.write(result.value)
    sys.stdout.flush()
    if args.dump_store and runner.store is not None:
        sys.stderr.write(dump_store(runner, args.dump_store))
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return 1
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="[%(name)s] %(levelname)s: %(message)s",
            stream=sys.stderr,
        )
    try:
        code = asyncio.run(run(args))
    except KeyboardInterrupt:
        code = 130
    raise SystemExit(code)


if __name__ == "__main__":
    main()
