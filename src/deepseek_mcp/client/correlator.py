"""Client correlator.

Turns intents into request envelopes, assigns request identifiers and
matches responses that arrive out of band back to the call that produced
them.

Lifecycle of a call:
    request_id = await correlator.dispatch(intent)   # PendingCall recorded
    ...transport pushes the reply into correlator.on_message(data)...
    envelope = await correlator.wait(request_id)     # resolved envelope

A PendingCall is removed as soon as its response matches. A response that
arrives before anyone waits for it is held until ``wait()`` collects it or
the connection drops. When the connection drops every PendingCall and
every uncollected response is discarded; waiting on any of those ids fails
with ConnectionError. Responses whose id matches no PendingCall (unexpected,
timed out, or from an earlier connection) are logged as orphaned and
discarded.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field

from pydantic import ValidationError

from ..errors import DecodeError
from ..protocol import Method, RequestEnvelope, ResponseEnvelope, decode_response
from ..types import Category
from .intents import Intent
from .transport import ClientTransport

logger = logging.getLogger(__name__)


@dataclass
class PendingCall:
    """An issued request awaiting its response."""

    id: int
    intent: Intent
    future: asyncio.Future[ResponseEnvelope]
    issued_at: float = field(default_factory=time.monotonic)
    # Set once a caller is waiting on the future
    claimed: bool = False


def _settle(
    future: asyncio.Future[ResponseEnvelope], outcome: ResponseEnvelope | Exception
) -> None:
    """Resolve a future from any thread."""

    def apply() -> None:
        if future.done():
            return
        if isinstance(outcome, Exception):
            future.set_exception(outcome)
        else:
            future.set_result(outcome)

    loop = future.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None

    if running is loop:
        apply()
    else:
        loop.call_soon_threadsafe(apply)


class ClientCorrelator:
    """Request id allocation and response matching for one client.

    Identifiers start at 1 and strictly increase for the lifetime of the
    instance. The counter and the tables are guarded by a lock, and futures
    are resolved on their own event loop, so responses and disconnects may
    be reported from any thread.
    """

    def __init__(self, transport: ClientTransport | None = None) -> None:
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._last_id = 0
        # Highest id issued before the most recent connection loss
        self._closed_through = 0
        self._pending: dict[int, PendingCall] = {}
        # Matched responses nobody has waited for yet
        self._unclaimed: dict[int, asyncio.Future[ResponseEnvelope]] = {}
        self._transport: ClientTransport | None = None
        if transport is not None:
            self.attach(transport)

    @property
    def transport(self) -> ClientTransport | None:
        return self._transport

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def unclaimed_count(self) -> int:
        """Responses matched but not yet collected with ``wait()``."""
        with self._lock:
            return len(self._unclaimed)

    def pending_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._pending)

    def attach(self, transport: ClientTransport) -> None:
        """Route the transport's inbound messages and disconnects here."""
        self._transport = transport
        transport.bind(self.on_message, self.connection_lost)

    def next_id(self) -> int:
        """Allocate the next request identifier."""
        with self._lock:
            self._last_id = next(self._ids)
            return self._last_id

    def build_envelope(self, intent: Intent, request_id: int) -> RequestEnvelope:
        """Build the ``call-tool`` envelope for an intent."""
        return RequestEnvelope.create(
            Method.invoke_for(Category.TOOL),
            request_id,
            name_or_uri=intent.tool_name,
            arguments=intent.arguments(),
        )

    async def dispatch(self, intent: Intent) -> int:
        """Send the request for an intent and return its identifier.

        Raises:
            ConnectionError: If no transport is attached or it is not connected
        """
        if self._transport is None:
            raise ConnectionError("Not connected to MCP server")

        request_id = self.next_id()
        envelope = self.build_envelope(intent, request_id)
        future: asyncio.Future[ResponseEnvelope] = asyncio.get_running_loop().create_future()

        # Recorded before sending: request/response transports deliver the
        # reply before send() returns
        with self._lock:
            self._pending[request_id] = PendingCall(request_id, intent, future)

        try:
            await self._transport.send(envelope)
        except BaseException:
            with self._lock:
                self._pending.pop(request_id, None)
                self._unclaimed.pop(request_id, None)
            raise

        logger.debug(f"Dispatched {intent.tool_name} (id={request_id})")
        return request_id

    async def wait(self, request_id: int, timeout: float | None = None) -> ResponseEnvelope:
        """Wait for the response to a dispatched request.

        On timeout the call is abandoned: a late response is treated as
        orphaned.

        Raises:
            LookupError: If the id was never dispatched or was already awaited
            ConnectionError: If the connection dropped before the response
                was collected
            TimeoutError: If no response arrived within ``timeout``
        """
        with self._lock:
            future = self._unclaimed.pop(request_id, None)
            if future is None:
                pending = self._pending.get(request_id)
                if pending is not None and not pending.claimed:
                    pending.claimed = True
                    future = pending.future
            closed = request_id <= self._closed_through

        if future is None:
            if closed:
                raise ConnectionError(f"Connection closed before response to id {request_id}")
            raise LookupError(f"No outstanding call with id {request_id}")

        try:
            return await asyncio.wait_for(future, timeout)
        except (TimeoutError, asyncio.CancelledError):
            with self._lock:
                self._pending.pop(request_id, None)
            raise

    async def call(self, intent: Intent, timeout: float | None = None) -> ResponseEnvelope:
        """Dispatch an intent and wait for its response."""
        request_id = await self.dispatch(intent)
        return await self.wait(request_id, timeout)

    def on_message(self, data: bytes | str) -> ResponseEnvelope | None:
        """Match an inbound response to its pending call.

        Safe to call from any thread. Returns the envelope when it matched a
        pending call, None when it was discarded.
        """
        try:
            envelope = decode_response(data)
        except (DecodeError, ValidationError) as e:
            logger.warning(f"Discarding undecodable response: {e}")
            return None

        with self._lock:
            pending = self._pending.pop(envelope.id, None) if isinstance(envelope.id, int) else None
            if pending is not None and not pending.claimed:
                self._unclaimed[pending.id] = pending.future

        if pending is None:
            logger.warning(f"Discarding orphaned response (id={envelope.id!r})")
            return None

        _settle(pending.future, envelope)
        elapsed = time.monotonic() - pending.issued_at
        logger.debug(f"Resolved id={pending.id} ({pending.intent.tool_name}) in {elapsed:.3f}s")
        return envelope

    def connection_lost(self) -> None:
        """Discard every pending call and uncollected response; waiters fail."""
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
            self._unclaimed.clear()
            self._closed_through = self._last_id

        # Unclaimed calls have no waiter to notify; a later wait() raises
        for call in pending:
            if call.claimed:
                error = ConnectionError(f"Connection closed before response to id {call.id}")
                _settle(call.future, error)
        if pending:
            logger.info(f"Connection lost with {len(pending)} pending call(s)")
