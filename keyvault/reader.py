"""
Secret readers: prompt the operator for a line of input.

The ``KeyManager`` only depends on the ``SecretReader`` protocol; the console
implementation is wired in by ``KeyManager.from_config`` and the CLI.
"""
import sys
import getpass
import logging
from typing import Protocol, runtime_checkable

from .exceptions import SecretReaderError

logger = logging.getLogger("keyvault")


@runtime_checkable
class SecretReader(Protocol):
    """Reads one line of text from the operator."""

    async def read(self, prompt: str, echo: bool = False) -> str:
        ...


class ConsoleSecretReader:
    """Read secrets from the controlling terminal.

    Non-echoing reads go through ``getpass``. Reads run on the calling
    thread, never in an executor, so Ctrl-C at a prompt exits promptly.
    """

    def __init__(self, stream=None):
        self._stream = stream or sys.stderr

    def _read_line(self, prompt: str, echo: bool) -> str:
        if echo:
            self._stream.write(prompt)
            self._stream.flush()
            line = sys.stdin.readline()
            if not line:
                raise EOFError("End of input")
            return line.rstrip("\r\n")
        return getpass.getpass(prompt, stream=self._stream)

    async def read(self, prompt: str, echo: bool = False) -> str:
        try:
            return self._read_line(prompt, echo)
        except (EOFError, OSError) as err:
            raise SecretReaderError(f"Unable to read input: {err}") from err
