# cppcheckdata_reduce/frontend.py
"""
Access to the cppcheck front end.

Parsing and type resolution are done by cppcheck itself: ``cppcheck
--dump file.c`` writes ``file.c.dump``, which the ``cppcheckdata`` module
shipped in cppcheck's ``addons/`` directory turns into Python objects. The
module is not on PyPI, so it is imported lazily and a missing module is
reported as a :class:`FrontendError`.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import FrontendError, ReduceErrorCodes, SourceSpan

logger = logging.getLogger(__name__)


def import_cppcheckdata() -> Any:
    """Import ``cppcheckdata`` with a friendly error on failure."""
    try:
        import cppcheckdata  # type: ignore[import-untyped]
    except ImportError as exc:
        raise FrontendError(
            "cppcheckdata is not importable; install cppcheck and add its "
            "addons directory to PYTHONPATH",
            code=ReduceErrorCodes.CPPCHECKDATA_MISSING,
            cause=exc,
        ) from exc
    return cppcheckdata


def load_dump(path: str) -> Any:
    """Parse a ``.dump`` file into a ``cppcheckdata.CppcheckData``."""
    dump = Path(path)
    if not dump.is_file():
        raise FrontendError(
            f"dump file not found: {dump}",
            code=ReduceErrorCodes.DUMP_NOT_FOUND,
            span=SourceSpan(file=str(dump)),
        )
    cppcheckdata = import_cppcheckdata()
    logger.info("Parsing dump file: %s", dump)
    try:
        return cppcheckdata.parsedump(str(dump))
    except Exception as exc:
        raise FrontendError(
            f"cannot parse dump file {dump}: {exc}",
            code=ReduceErrorCodes.DUMP_UNREADABLE,
            span=SourceSpan(file=str(dump)),
            cause=exc,
        ) from exc


def run_cppcheck(
    source: str,
    cppcheck: str = "cppcheck",
    extra_args: Sequence[str] = (),
) -> Path:
    """
    Run ``cppcheck --dump`` on *source* and return the dump path.

    Only the dump is wanted, so cppcheck's own checks are kept quiet.
    """
    exe = shutil.which(cppcheck)
    if exe is None:
        raise FrontendError(
            f"cppcheck executable not found: {cppcheck}",
            code=ReduceErrorCodes.CPPCHECK_FAILED,
        )
    cmd = [exe, "--dump", "--quiet", *extra_args, source]
    logger.info("Running: %s", " ".join(cmd))
    proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
    dump = Path(source + ".dump")
    if proc.returncode != 0 or not dump.is_file():
        raise FrontendError(
            f"cppcheck failed with exit code {proc.returncode}: {proc.stderr.strip()}",
            code=ReduceErrorCodes.CPPCHECK_FAILED,
            span=SourceSpan(file=source),
        )
    return dump


def select_configuration(data: Any, name: Optional[str] = None) -> Any:
    """
    Pick the preprocessor configuration to transform.

    The first configuration is used unless *name* is given.
    """
    configurations = list(getattr(data, "configurations", None) or [])
    if not configurations:
        raise FrontendError(
            "dump file contains no configuration",
            code=ReduceErrorCodes.NO_CONFIGURATION,
        )
    if name is None:
        return configurations[0]
    for cfg in configurations:
        if getattr(cfg, "name", None) == name:
            return cfg
    raise FrontendError(
        f"no configuration named {name!r}; available: "
        + ", ".join(repr(getattr(c, "name", "")) for c in configurations),
        code=ReduceErrorCodes.NO_CONFIGURATION,
    )


class SourceLoader:
    """
    Reads the files named by tokens.

    Token file names are the paths cppcheck was given, usually relative to
    the directory cppcheck ran in. They are tried as-is, then against each
    root in order.
    """

    def __init__(self, roots: Iterable[str] = (), encoding: str = "utf-8") -> None:
        self.roots: List[Path] = [Path(r) for r in roots]
        self.encoding = encoding
        self._cache: Dict[str, str] = {}
        self.resolved: Dict[str, Path] = {}

    def resolve(self, name: str) -> Path:
        candidates = [Path(name)] + [root / name for root in self.roots]
        for candidate in candidates:
            if candidate.is_file():
                self.resolved[name] = candidate
                return candidate
        raise FrontendError(
            f"source file not found: {name}",
            code=ReduceErrorCodes.SOURCE_NOT_FOUND,
            span=SourceSpan(file=name),
        )

    def __call__(self, name: str) -> str:
        if name not in self._cache:
            path = self.resolve(name)
            # newline="" keeps CRLF files byte-identical outside the edits
            with open(path, encoding=self.encoding, newline="") as fh:
                self._cache[name] = fh.read()
        return self._cache[name]
