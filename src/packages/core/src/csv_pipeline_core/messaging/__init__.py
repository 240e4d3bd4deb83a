"""Job queue transport and message contract."""
from csv_pipeline_core.messaging.messages import QueueMessage, parse_message
from csv_pipeline_core.messaging.redis_queue import Delivery, RedisQueue

__all__ = ["QueueMessage", "parse_message", "Delivery", "RedisQueue"]
