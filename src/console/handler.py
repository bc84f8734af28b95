from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Mapping, Optional

from common.filestore import FileStore
from state.engine import PersistenceEngine
from state.errors import ErrorKind, OperationResult


COMMANDS = ("show", "init", "reset", "delete")


def _outcome(command: str, engine: PersistenceEngine, result: OperationResult) -> Dict[str, Any]:
    return {
        "ok": bool(result),
        "command": command,
        "path": str(engine.full_path()),
        "error": result.kind.value if result.kind else None,
        "detail": str(result.error) if result.error else None,
    }


def run_once(
    command: str,
    environ: Optional[Mapping[str, str]] = None,
    *,
    store: Optional[FileStore] = None,
) -> Dict[str, Any]:
    """Run one command against the save file configured by `SAVE_*` env vars.

    - show:   load and return the state (the default state if no file exists)
    - init:   write the default state unless a save file already exists
    - reset:  delete the file and write the default state
    - delete: remove the file
    """
    if command not in COMMANDS:
        raise ValueError(f"Unknown command: {command!r}")
    engine = PersistenceEngine.from_env(environ=environ, store=store)

    if command == "show":
        result = engine.load()
        out = _outcome(command, engine, result)
        out["exists"] = result.kind is not ErrorKind.NOT_FOUND
        if result.kind is ErrorKind.NOT_FOUND:
            out.update(ok=True, error=None, detail=None)
        if out["ok"]:
            out["state"] = engine.state.model_dump(mode="json")
        return out

    if command == "init":
        if engine.file_exists():
            out = _outcome(command, engine, OperationResult.success())
            out["created"] = False
            return out
        out = _outcome(command, engine, engine.save())
        out["created"] = out["ok"]
        return out

    if command == "reset":
        return _outcome(command, engine, engine.reset())

    return _outcome(command, engine, engine.delete())


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Inspect or reset the configured save file.")
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        out = run_once(args.command)
    except (RuntimeError, ValueError) as ex:
        print(json.dumps({"ok": False, "command": args.command, "error": "configuration", "detail": str(ex)}))
        return 1
    print(json.dumps(out, sort_keys=True))
    return 0 if out["ok"] else 1


if __name__ == "__main__":
    sys.exit(main())
