# cppcheckdata_reduce/source_rewriter.py
"""
Offset-based text edits anchored on cppcheck tokens.

Edits are recorded against the original text of each file and applied in
one go by :meth:`SourceRewriter.apply`, so positions reported by the dump
stay valid while a pass records its edits. Every anchor token is checked
against the source text before an edit is accepted; a token whose spelling
cannot be found at its reported position (for example one produced by a
macro expansion) raises :class:`RewriteError`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from .ast_helper import Token, tok_column, tok_file, tok_line, tok_source_text
from .errors import ReduceErrorCodes, RewriteError, SourceSpan

logger = logging.getLogger(__name__)

_IDENT_CHAR = re.compile(r"[A-Za-z0-9_]")


@dataclass(frozen=True)
class TextEdit:
    """Replace ``text[start:end]`` of *file* with *replacement*."""

    file: str
    start: int
    end: int
    replacement: str
    seq: int = 0

    @property
    def is_insertion(self) -> bool:
        return self.start == self.end


class SourceRewriter:
    """
    Collects edits for the files a token list refers to.

    *loader* maps a token's ``file`` attribute to that file's text.
    """

    def __init__(self, loader: Callable[[str], str]) -> None:
        self._loader = loader
        self._texts: Dict[str, str] = {}
        self._line_starts: Dict[str, List[int]] = {}
        self._edits: Dict[str, List[TextEdit]] = {}
        self._seq = 0

    # ── positions ───────────────────────────────────────────────────────

    def text(self, path: str) -> str:
        if path not in self._texts:
            self._texts[path] = self._loader(path)
        return self._texts[path]

    def _starts(self, path: str) -> List[int]:
        if path not in self._line_starts:
            starts = [0]
            for m in re.finditer(r"\n", self.text(path)):
                starts.append(m.end())
            self._line_starts[path] = starts
        return self._line_starts[path]

    def locate(self, tok: Token) -> Tuple[str, int, int]:
        """Return ``(file, start, end)`` of a token's spelling in its file."""
        path = tok_file(tok)
        spelling = tok_source_text(tok)
        text = self.text(path)
        starts = self._starts(path)
        line = tok_line(tok)
        if not spelling or line < 1 or line > len(starts):
            raise self._mismatch(tok, "token position is outside the file")

        line_start = starts[line - 1]
        line_end = starts[line] - 1 if line < len(starts) else len(text)
        wanted = line_start + max(tok_column(tok) - 1, 0)
        if text.startswith(spelling, wanted) and self._is_whole(text, wanted, spelling):
            return path, wanted, wanted + len(spelling)

        # columns drift when the front end expands tabs; take the closest
        # occurrence on the same line
        best = None
        for m in re.finditer(re.escape(spelling), text[line_start:line_end]):
            pos = line_start + m.start()
            if not self._is_whole(text, pos, spelling):
                continue
            if best is None or abs(pos - wanted) < abs(best - wanted):
                best = pos
        if best is None:
            raise self._mismatch(tok, f"{spelling!r} not found on line {line}")
        return path, best, best + len(spelling)

    @staticmethod
    def _is_whole(text: str, pos: int, spelling: str) -> bool:
        if not _IDENT_CHAR.match(spelling[0]):
            return True
        before = text[pos - 1] if pos > 0 else ""
        end = pos + len(spelling)
        after = text[end] if end < len(text) else ""
        return not _IDENT_CHAR.match(before or " ") and not _IDENT_CHAR.match(after or " ")

    @staticmethod
    def _mismatch(tok: Token, detail: str) -> RewriteError:
        return RewriteError(
            f"cannot anchor edit on {tok_source_text(tok)!r}: {detail}",
            code=ReduceErrorCodes.TEXT_MISMATCH,
            span=SourceSpan.from_token(tok),
        )

    # ── recording ───────────────────────────────────────────────────────

    def _add(self, path: str, start: int, end: int, replacement: str) -> None:
        self._seq += 1
        edit = TextEdit(path, start, end, replacement, self._seq)
        bucket = self._edits.setdefault(path, [])
        for other in bucket:
            if (other.start, other.end, other.replacement) == (start, end, replacement):
                return
        bucket.append(edit)
        logger.debug("edit %s[%d:%d] -> %r", path, start, end, replacement)

    def insert_before(self, tok: Token, text: str) -> None:
        path, start, _ = self.locate(tok)
        self._add(path, start, start, text)

    def insert_after(self, tok: Token, text: str) -> None:
        path, _, end = self.locate(tok)
        self._add(path, end, end, text)

    def remove(self, tok: Token) -> None:
        path, start, end = self.locate(tok)
        self._add(path, start, end, "")

    def replace(self, tok: Token, text: str) -> None:
        path, start, end = self.locate(tok)
        self._add(path, start, end, text)

    def remove_range(self, first: Token, last: Token) -> None:
        path, start, _ = self.locate(first)
        last_path, _, end = self.locate(last)
        if last_path != path or end < start:
            raise RewriteError(
                "edit range spans files or is reversed",
                code=ReduceErrorCodes.UNEXPECTED_SHAPE,
                span=SourceSpan.from_token(first),
            )
        self._add(path, start, end, "")

    # ── application ─────────────────────────────────────────────────────

    @property
    def has_edits(self) -> bool:
        return any(self._edits.values())

    def edits(self, path: str) -> List[TextEdit]:
        """Edits of one file in application order."""
        return sorted(self._edits.get(path, []), key=lambda e: (e.start, e.end, e.seq))

    def apply(self) -> Dict[str, str]:
        """
        Return the rewritten text of every edited file.

        Raises :class:`RewriteError` if two edits overlap; nothing is
        returned in that case.
        """
        result: Dict[str, str] = {}
        for path in self._edits:
            text = self.text(path)
            pieces: List[str] = []
            cursor = 0
            for edit in self.edits(path):
                if edit.start < cursor:
                    raise RewriteError(
                        f"overlapping edits in {path} at offset {edit.start}",
                        code=ReduceErrorCodes.OVERLAPPING_EDITS,
                        span=SourceSpan(file=path),
                    )
                pieces.append(text[cursor:edit.start])
                pieces.append(edit.replacement)
                cursor = edit.end
            pieces.append(text[cursor:])
            result[path] = "".join(pieces)
        return result
