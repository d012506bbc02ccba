import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

_LINE_BREAK = re.compile(r"\r\n|\n|\r")


def _detect_newline(text: str) -> str:
    """Dominant line ending of ``text``; ties and single-line text use LF."""
    crlf = text.count("\r\n")
    return "\r\n" if crlf > text.count("\n") - crlf else "\n"


@dataclass
class MarkdownFile:
    """A Markdown document held as lines, remembering how it was terminated."""

    path: Optional[Path] = None
    lines: List[str] = field(default_factory=list)
    newline: str = "\n"
    trailing_newline: bool = True

    @classmethod
    def from_text(cls, text: str, path: Optional[Path] = None) -> "MarkdownFile":
        newline = _detect_newline(text)
        trailing = text.endswith(("\n", "\r"))
        # Every break style splits, so mixed endings never glue two lines together.
        lines = _LINE_BREAK.split(text) if text else []
        if trailing:
            lines.pop()
        return cls(path=path, lines=lines, newline=newline, trailing_newline=trailing)

    @classmethod
    def read(cls, path: Path) -> "MarkdownFile":
        path = Path(path)
        # newline="" keeps CRLF intact so it can be written back the same way.
        with open(path, "r", encoding="utf-8", newline="") as handle:
            text = handle.read()
        return cls.from_text(text, path=path)

    def text(self) -> str:
        if not self.lines:
            return ""
        out = self.newline.join(self.lines)
        if self.trailing_newline:
            out += self.newline
        return out

    def write(self, path: Optional[Path] = None) -> Path:
        if path is None and self.path is None:
            raise ValueError("MarkdownFile has no path to write to")
        target = Path(path if path is not None else self.path).resolve()
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                newline="",
                delete=False,
                dir=str(target.parent),
                prefix=f".{target.name}.",
                suffix=".tmp",
            ) as tmp:
                tmp.write(self.text())
                tmp.flush()
                os.fsync(tmp.fileno())
                tmp_path = Path(tmp.name)
            os.replace(str(tmp_path), str(target))
        finally:
            if tmp_path and tmp_path.exists():
                tmp_path.unlink()
        self.path = target
        return target
