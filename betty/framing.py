"""
Output framing for the host.

stdout is shared with anything else that prints, so every result is wrapped
in a fixed marker pair. The host scans for these exact lines to pull one
JSON record out of the stream. Do not change them.
"""

import json
import sys
from typing import TextIO

from betty.models import ContainerOutput

OUTPUT_START_MARKER = "---NANOCLAW_OUTPUT_START---"
OUTPUT_END_MARKER = "---NANOCLAW_OUTPUT_END---"


class OutputFramer:
    """Writes ContainerOutput records between the start/end markers."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved late so pytest's capsys and redirected stdout both work
        return self._stream or sys.stdout

    def emit(self, output: ContainerOutput) -> None:
        payload = json.dumps(output.to_dict(), ensure_ascii=False)
        self.stream.write(f"{OUTPUT_START_MARKER}\n{payload}\n{OUTPUT_END_MARKER}\n")
        self.stream.flush()


def parse_frames(text: str) -> list[dict]:
    """Extract every framed record from a captured stdout stream."""
    frames = []
    inside = False
    buf: list[str] = []
    for line in text.splitlines():
        if line == OUTPUT_START_MARKER:
            inside, buf = True, []
        elif line == OUTPUT_END_MARKER and inside:
            frames.append(json.loads("\n".join(buf)))
            inside = False
        elif inside:
            buf.append(line)
    return frames
