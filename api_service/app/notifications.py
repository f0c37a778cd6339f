# api_service/app/notifications.py
import json
import logging

import aio_pika

from api_service.app.config import QUEUE_ORDER_NOTIFICATIONS, RABBITMQ_URL

logger = logging.getLogger(__name__)


def order_created_event(order) -> dict:
    return {
        "event": "order_created",
        "order_id": order.row_key,
        "customer_id": order.customer_id,
        "product_id": order.product_id,
        "quantity": order.quantity,
        "total_price": str(order.total_price),
    }


async def publish_order_event(event: dict, url: str = None):
    """Publish an order event to the notifications queue. Failures are logged only."""
    url = RABBITMQ_URL if url is None else url
    if not url:
        return False

    try:
        connection = await aio_pika.connect_robust(url)
        async with connection:
            channel = await connection.channel()
            await channel.declare_queue(QUEUE_ORDER_NOTIFICATIONS, durable=True)
            await channel.default_exchange.publish(
                aio_pika.Message(
                    body=json.dumps(event).encode(),
                    content_type="application/json",
                ),
                routing_key=QUEUE_ORDER_NOTIFICATIONS,
            )
    except Exception:
        logger.exception("Could not publish %s for order %s", event.get("event"), event.get("order_id"))
        return False

    logger.debug("Published %s for order %s", event["event"], event["order_id"])
    return True
