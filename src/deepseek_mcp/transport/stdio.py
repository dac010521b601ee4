"""stdio (pipe) binding.

One long-lived duplex stream with a single peer: requests arrive on stdin,
responses leave on stdout. Logging goes to stderr only.

Wire format (newline-delimited JSON, UTF-8 encoded):
- Input (stdin):   {"jsonrpc": "2.0", "id": 1, "method": "list-tools", "params": {}}
- Output (stdout): {"jsonrpc": "2.0", "id": 1, "result": {"tools": [...]}}

Cross-platform considerations:
- Output newlines are always LF, never CRLF
- Input accepts LF or CRLF and a leading UTF-8 BOM
- Binary streams are used so encoding does not depend on the locale;
  a line that is not valid UTF-8 is logged and skipped like any other
  undecodable line
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, BinaryIO

from ..protocol import RequestHandler, ResponseEnvelope
from ..protocol.codec import ENCODING
from .base import TransportBinding

if TYPE_CHECKING:
    from ..config import ServerConfig

logger = logging.getLogger(__name__)

NEWLINE = "\n"


class StdioBinding(TransportBinding):
    """Pipe binding over stdin/stdout.

    Requests are handled one at a time in arrival order, so responses
    leave in request order.

    Usage:
        binding = StdioBinding(handler, config)
        await binding.serve()  # Blocks until stdin closes
    """

    name = "pipe"

    def __init__(
        self,
        handler: RequestHandler,
        config: ServerConfig,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
    ) -> None:
        super().__init__(handler, config)
        self._stdin = stdin if stdin is not None else sys.stdin.buffer
        self._stdout = stdout if stdout is not None else sys.stdout.buffer
        self._running = False

    def encode(self, envelope: ResponseEnvelope) -> bytes:
        return (envelope.to_json() + NEWLINE).encode(ENCODING)

    async def serve(self) -> None:
        """Process requests until stdin closes."""
        self._running = True
        logger.info(f"{self._config.name} {self._config.version} running on stdio")

        try:
            while self._running:
                line = await self._read_line()
                if line is None:
                    break  # EOF

                line = line.strip()
                if not line:
                    continue

                response = await self.process(line)
                if response is not None:
                    self._write(response)

        except asyncio.CancelledError:
            logger.info("stdio binding cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        self._running = False

    async def _read_line(self) -> bytes | None:
        """Read a raw line from stdin without blocking the event loop.

        Lines stay bytes so the codec rejects invalid UTF-8 instead of it
        being silently replaced. CRLF endings are removed by ``strip()``.
        """
        loop = asyncio.get_running_loop()
        line = await loop.run_in_executor(None, self._stdin.readline)
        return line if line else None

    def _write(self, envelope: ResponseEnvelope) -> None:
        try:
            self._stdout.write(self.encode(envelope))
            self._stdout.flush()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write response (id={envelope.id!r}): {e}")
