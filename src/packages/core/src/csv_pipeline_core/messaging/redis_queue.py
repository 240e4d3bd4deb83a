"""Durable job queue on Redis lists.

Messages are pushed on the left of the queue list and taken from the right.
Receiving atomically moves a message into this consumer's processing list,
where it stays until it is settled: ``ack`` removes it, ``requeue`` puts a
copy back on the queue, ``dead_letter`` parks it in ``<queue>:dead``.
Anything still in the processing list when a worker starts was never settled
and is moved back to the queue by ``recover_unacked``.
"""
import structlog
from redis import Redis

from csv_pipeline_core.messaging.messages import QueueMessage, parse_message
from csv_pipeline_core.util.errors import MalformedMessageError

logger = structlog.get_logger()


class Delivery:
    """One received message. It can be settled exactly once."""

    def __init__(self, queue: "RedisQueue", raw: bytes):
        self.queue = queue
        self.raw = raw
        self.settled: str | None = None

    @property
    def body(self) -> str:
        return self.raw.decode("utf-8", errors="replace") if isinstance(self.raw, bytes) else self.raw

    def ack(self) -> bool:
        if not self._can_settle("ack"):
            return False
        self.queue.client.lrem(self.queue.processing_key, 1, self.raw)
        self.settled = "ack"
        return True

    def requeue(self) -> bool:
        """Put the message back with its attempt counter bumped."""
        if not self._can_settle("requeue"):
            return False
        try:
            body = parse_message(self.raw).next_attempt().to_json()
        except MalformedMessageError:
            body = self.raw
        with self.queue.client.pipeline() as pipe:
            pipe.lpush(self.queue.name, body)
            pipe.lrem(self.queue.processing_key, 1, self.raw)
            pipe.execute()
        self.settled = "requeue"
        logger.info("message_requeued", queue=self.queue.name)
        return True

    def dead_letter(self, reason: str | None = None) -> bool:
        if not self._can_settle("dead_letter"):
            return False
        with self.queue.client.pipeline() as pipe:
            pipe.lpush(self.queue.dead_key, self.raw)
            pipe.lrem(self.queue.processing_key, 1, self.raw)
            pipe.execute()
        self.settled = "dead_letter"
        logger.warning("message_dead_lettered", queue=self.queue.name, reason=reason)
        return True

    def _can_settle(self, action: str) -> bool:
        if self.settled is not None:
            logger.warning(
                "delivery_already_settled", settled=self.settled, requested=action
            )
            return False
        return True


class RedisQueue:
    """Job queue bound to an injected Redis client.

    The client is owned by the caller, which creates it at process start and
    closes it at shutdown.
    """

    def __init__(self, client: Redis, name: str, consumer: str = "worker"):
        self.client = client
        self.name = name
        self.consumer = consumer
        self.processing_key = f"{name}:processing:{consumer}"
        self.dead_key = f"{name}:dead"

    def publish(self, message: QueueMessage) -> None:
        self.client.lpush(self.name, message.to_json())
        logger.info("message_published", queue=self.name, job_id=message.job_id)

    def receive(self, timeout: float = 5.0) -> Delivery | None:
        """Block up to ``timeout`` seconds for the next message."""
        raw = self.client.blmove(self.name, self.processing_key, timeout, src="RIGHT", dest="LEFT")
        if raw is None:
            return None
        return Delivery(self, raw)

    def recover_unacked(self) -> int:
        """Move unsettled messages from this consumer back to the head of the queue."""
        moved = 0
        while self.client.lmove(self.processing_key, self.name, src="LEFT", dest="RIGHT") is not None:
            moved += 1
        if moved:
            logger.warning("unacked_recovered", queue=self.name, consumer=self.consumer, count=moved)
        return moved

    def depth(self) -> int:
        return int(self.client.llen(self.name))

    def in_flight(self) -> int:
        return int(self.client.llen(self.processing_key))

    def dead_letters(self, limit: int = 100) -> list[bytes]:
        return list(self.client.lrange(self.dead_key, 0, limit - 1))
