"""
In-process change feed for device_state rows.

Subscribers are asyncio queues bound to the event loop that created them.
Publishing is thread safe, so sync request handlers running in the
threadpool can publish too.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Tuple

logger = logging.getLogger(__name__)


class StateChangeFeed:
    def __init__(self):
        self._subscribers: Dict[str, List[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]]] = defaultdict(list)

    def subscribe(self, device_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[device_id].append((asyncio.get_running_loop(), queue))
        return queue

    def unsubscribe(self, device_id: str, queue: asyncio.Queue) -> None:
        subs = self._subscribers.get(device_id, [])
        self._subscribers[device_id] = [(loop, q) for loop, q in subs if q is not queue]
        if not self._subscribers[device_id]:
            del self._subscribers[device_id]

    def subscriber_count(self, device_id: str) -> int:
        return len(self._subscribers.get(device_id, []))

    def publish(self, device_id: str, change: Mapping[str, Any]) -> int:
        """Deliver a change to every subscriber of the device.

        Returns the number of subscribers reached.
        """
        delivered = 0
        for loop, queue in list(self._subscribers.get(device_id, [])):
            if loop.is_closed():
                continue
            try:
                loop.call_soon_threadsafe(queue.put_nowait, dict(change))
                delivered += 1
            except RuntimeError as e:
                logger.debug(f"Dropping change for closed subscriber of {device_id}: {e}")
        return delivered


state_feed = StateChangeFeed()
