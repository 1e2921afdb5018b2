"""Print transports.

:class:`FilePrinter` writes each job to disk for inspection. The Windows
spooler transport is not available in this package, so any other spec
given to :func:`new_printer` raises :class:`PrinterUnavailableError`.
"""

from __future__ import annotations

import os
import tempfile
import uuid
from typing import Protocol, runtime_checkable

FILE_PREFIX = "file:"


class PrinterError(Exception):
    """A print transport failed."""


class InvalidSpecError(PrinterError, ValueError):
    """The printer spec is empty or malformed."""


class PrinterUnavailableError(PrinterError):
    """The requested transport is not available on this platform."""


@runtime_checkable
class Printer(Protocol):
    """A transport that sends raw jobs to a printer.

    ``name`` identifies the printer (``file:<dir>`` for a file printer).
    """

    name: str

    def print(self, job_name: str, data: bytes) -> None:
        """Send ``data`` as a single raw job titled ``job_name``."""
        ...

    def is_reachable(self) -> bool:
        """Whether the device is currently available."""
        ...


class FilePrinter:
    """Writes each print job to ``<directory>/<job_name>.escpos``."""

    def __init__(self, directory: str):
        if not directory:
            raise InvalidSpecError("invalid printer spec: file printer requires a directory")
        try:
            os.makedirs(directory, mode=0o755, exist_ok=True)
        except OSError as exc:
            raise PrinterError(f"create printer dir {directory!r}: {exc}") from exc
        self.directory = directory

    @property
    def name(self) -> str:
        return FILE_PREFIX + self.directory

    def is_reachable(self) -> bool:
        """True if the directory exists and a file can be created in it."""
        if not os.path.isdir(self.directory):
            return False
        try:
            fd, probe = tempfile.mkstemp(prefix=".reachable-", dir=self.directory)
        except OSError:
            return False
        os.close(fd)
        try:
            os.remove(probe)
        except OSError:
            pass
        return True

    def print(self, job_name: str, data: bytes) -> None:
        """Write ``data``; an empty ``job_name`` gets a fresh UUIDv4."""
        if not job_name:
            job_name = str(uuid.uuid4())
        path = os.path.join(self.directory, job_name + ".escpos")
        try:
            with open(path, "wb") as fh:
                fh.write(data)
        except (OSError, ValueError) as exc:
            raise PrinterError(f"write print job {path!r}: {exc}") from exc


def new_printer(spec: str) -> Printer:
    """Return a printer for ``spec``.

    ``file:<dir>`` gives a :class:`FilePrinter`; an empty spec raises
    :class:`InvalidSpecError`; any other value names a Windows spooler
    queue, which is unavailable here.
    """
    if not spec:
        raise InvalidSpecError("invalid printer spec: spec is empty")
    if spec.startswith(FILE_PREFIX):
        return FilePrinter(spec[len(FILE_PREFIX):])
    raise PrinterUnavailableError("windows spooler unavailable on this platform")