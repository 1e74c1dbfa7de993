"""Bounded per-connection outbound queues for match events."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional

from devradar.domain.developers.exceptions import DeliveryFailure
from devradar.domain.matching.events import MatchEvent
from devradar.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class ConnectionOutbox:
	"""FIFO of pending pushes for one connection.

	``put`` never blocks: when the queue is full the oldest pending event is
	dropped. A connection that keeps dropping past ``max_drops`` is reported as
	overloaded so the gateway can disconnect it.
	"""

	def __init__(self, connection_id: str, *, max_size: int = 256, max_drops: int = 1024) -> None:
		self.connection_id = connection_id
		self.max_drops = max(0, int(max_drops))
		self._queue: asyncio.Queue[MatchEvent] = asyncio.Queue(maxsize=max(1, int(max_size)))
		self.dropped = 0
		self.closed = False

	def __len__(self) -> int:
		return self._queue.qsize()

	@property
	def overloaded(self) -> bool:
		return self.dropped > self.max_drops

	def put(self, event: MatchEvent) -> None:
		if self.closed:
			raise DeliveryFailure("connection_closed")
		if self._queue.full():
			self._queue.get_nowait()
			self.dropped += 1
			obs_metrics.inc_outbox_drop()
		self._queue.put_nowait(event)

	async def get(self) -> MatchEvent:
		return await self._queue.get()

	def drain(self) -> list[MatchEvent]:
		items: list[MatchEvent] = []
		while not self._queue.empty():
			items.append(self._queue.get_nowait())
		return items

	def close(self) -> None:
		self.closed = True


class OutboxRouter:
	"""Event sink routing match events to the outbox of their connection."""

	def __init__(
		self,
		*,
		max_size: int = 256,
		max_drops: int = 1024,
		on_overload: Optional[Callable[[str], None]] = None,
	) -> None:
		self.max_size = max_size
		self.max_drops = max_drops
		self.on_overload = on_overload
		self._outboxes: Dict[str, ConnectionOutbox] = {}

	def __contains__(self, connection_id: object) -> bool:
		return connection_id in self._outboxes

	def open(self, connection_id: str) -> ConnectionOutbox:
		outbox = self._outboxes.get(connection_id)
		if outbox is None or outbox.closed:
			outbox = ConnectionOutbox(connection_id, max_size=self.max_size, max_drops=self.max_drops)
			self._outboxes[connection_id] = outbox
		return outbox

	def get(self, connection_id: str) -> Optional[ConnectionOutbox]:
		return self._outboxes.get(connection_id)

	def close(self, connection_id: str) -> None:
		outbox = self._outboxes.pop(connection_id, None)
		if outbox is not None:
			outbox.close()

	def deliver(self, event: MatchEvent) -> None:
		outbox = self._outboxes.get(event.connection_id)
		if outbox is None:
			raise DeliveryFailure("connection_gone")
		was_overloaded = outbox.overloaded
		outbox.put(event)
		if outbox.overloaded and not was_overloaded:
			logger.warning(
				"outbox overloaded connection=%s dropped=%s",
				event.connection_id,
				outbox.dropped,
			)
			if self.on_overload is not None:
				self.on_overload(event.connection_id)


__all__ = ["ConnectionOutbox", "OutboxRouter"]
