"""
Fan-out em tempo real dos registros gravados.

Cada assinante recebe, em uma fila própria, os eventos de inserção do
estado que escolheu. Assinante lento perde eventos antigos, nunca bloqueia
o ciclo.
"""

import asyncio
import logging
from typing import Iterable, Optional, Set

from sefaz_status.services.monitor.models import ServiceStatusRecord

logger = logging.getLogger(__name__)


class Subscription:
    """Fila de eventos de um assinante, filtrada por estado."""

    def __init__(self, state: Optional[str], max_queue: int = 100):
        self.state = state
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)

    def accepts(self, record: ServiceStatusRecord) -> bool:
        return self.state is None or record.state == self.state

    def push(self, record: ServiceStatusRecord) -> None:
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(record)

    async def get(self) -> ServiceStatusRecord:
        return await self.queue.get()


class RecordBroadcaster:
    """Distribui registros recém-gravados aos assinantes."""

    def __init__(self, max_queue: int = 100):
        self.max_queue = max_queue
        self._subscriptions: Set[Subscription] = set()

    def subscribe(self, state: Optional[str] = None) -> Subscription:
        subscription = Subscription(state, self.max_queue)
        self._subscriptions.add(subscription)
        logger.debug(f"Novo assinante (state={state}), total={len(self._subscriptions)}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)

    def publish(self, records: Iterable[ServiceStatusRecord]) -> int:
        """Publica eventos de inserção. Retorna quantas entregas foram feitas."""
        delivered = 0
        for record in records:
            for subscription in list(self._subscriptions):
                if subscription.accepts(record):
                    subscription.push(record)
                    delivered += 1
        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
