#!/usr/bin/env python3
"""
Betty CLI.

    COMMAND         ALIASES         WHAT IT DOES
    -------         -------         ----------------------------------
    run             serve           Run one session (stdin JSON in, framed JSON out)
    history         log, tail       Show the group's conversation history

With no command, `betty` runs a session: that is how the container starts it.
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

from betty import __version__

# ANSI colors
C_RESET = "\033[0m"
C_BOLD = "\033[1m"
C_DIM = "\033[2m"
C_TIME = "\033[90m"
C_BORDER = "\033[90m"

ROLE_COLORS = {
    "user": "\033[96m",       # cyan
    "assistant": "\033[93m",  # yellow
    "system": "\033[90m",     # gray
    "tool": "\033[92m",       # green
}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_run(args):
    """Run one session until the host closes it."""
    from betty.config import get_config, load_config, setup_logging
    from betty.session import SessionController

    cfg = load_config(Path(args.config)) if args.config else get_config()
    setup_logging(cfg)

    controller = SessionController(cfg)
    sys.exit(asyncio.run(controller.run()))


def _format_record(record: dict) -> str:
    """Format one history record for the terminal."""
    ts = record.get("timestamp", "")
    try:
        time_str = datetime.fromisoformat(ts).strftime("%Y-%m-%d %H:%M:%S")
    except (ValueError, TypeError):
        time_str = ts or "????-??-?? ??:??:??"

    role = record.get("role", "?")
    content = record.get("content", "") or ""
    color = ROLE_COLORS.get(role, C_RESET)

    lines = [f"  {C_TIME}{time_str}{C_RESET} {color}{C_BOLD}{role.upper()}{C_RESET}"
             f"  {C_DIM}({len(content)} chars){C_RESET}"]

    display = content if len(content) <= 500 else content[:500] + f"\n{C_DIM}[... truncated]{C_RESET}"
    for cline in display.split("\n")[:15]:
        lines.append(f"      {cline}")
    lines.append(f"  {C_BORDER}{'─' * 60}{C_RESET}")
    return "\n".join(lines)


def cmd_history(args):
    """Print the last N records of a history log, skipping corrupt lines."""
    from betty.history import HistoryStore

    if args.file:
        history_path = Path(args.file)
    else:
        from betty.config import get_config
        history_path = Path(get_config()["paths"]["history"])

    if not history_path.exists():
        print(f"  No history found at {history_path}")
        return

    messages = HistoryStore(history_path).records()
    if args.role:
        messages = [m for m in messages if m.role == args.role]

    for message in messages[-args.last:] if args.last > 0 else []:
        record = message.to_dict()
        if args.raw:
            print(json.dumps(record, ensure_ascii=False))
        else:
            print(_format_record(record))


# ---------------------------------------------------------------------------
# Parser with aliases
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under multiple names."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="betty",
        description="Betty: single-session chat assistant worker.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"betty {__version__}",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to config.yaml")

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    _add_command(sub, ["run", "serve"], "Run one session (stdin JSON in, framed JSON out)", cmd_run)

    def setup_history(p):
        p.add_argument("--file", "-f", default=None, help="History JSONL (default: from config)")
        p.add_argument("--last", "-n", type=int, default=20, help="Show last N records")
        p.add_argument("--role", "-r", choices=["user", "assistant", "tool", "system"],
                       default=None, help="Filter by role")
        p.add_argument("--raw", action="store_true", help="Raw JSONL output, no formatting")

    _add_command(sub, ["history", "log", "tail"],
                 "Show the group's conversation history", cmd_history, setup_history)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        cmd_run(args)
        return

    args.func(args)


if __name__ == "__main__":
    main()
