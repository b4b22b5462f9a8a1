"""
Workspace file tools: notes, lists and anything else the assistant keeps
in the group folder. Every path is relative to the workspace root and may
not escape it.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class WorkspaceFiles:
    """read_file / write_file / list_files rooted at one directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def resolve(self, relative_path: str) -> Path:
        root = self.root.resolve()
        resolved = (root / relative_path).resolve()
        if not resolved.is_relative_to(root):
            raise PermissionError("Path traversal blocked: path must be within workspace")
        return resolved

    async def read_file(self, args: dict, chat_jid: str = "") -> str:
        file_path = str(args.get("path", ""))
        resolved = self.resolve(file_path)
        if not resolved.exists():
            return f"File not found: {file_path}"
        return resolved.read_text(encoding="utf-8")

    async def write_file(self, args: dict, chat_jid: str = "") -> str:
        file_path = str(args.get("path", ""))
        resolved = self.resolve(file_path)
        resolved.parent.mkdir(parents=True, exist_ok=True)
        resolved.write_text(str(args.get("content", "")), encoding="utf-8")
        logger.info("Wrote %s", resolved)
        return f"File written: {file_path}"

    async def list_files(self, args: dict, chat_jid: str = "") -> str:
        dir_path = str(args.get("path") or ".")
        resolved = self.resolve(dir_path)
        if not resolved.exists():
            return f"Directory not found: {dir_path}"

        entries = [
            f"[dir] {entry.name}" if entry.is_dir() else entry.name
            for entry in sorted(resolved.iterdir())
        ]
        return "\n".join(entries) or "(empty directory)"
