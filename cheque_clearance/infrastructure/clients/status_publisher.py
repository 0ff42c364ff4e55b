"""Obligation service client that publishes cheque status snapshots, with exponential backoff retry"""

import asyncio
import logging
import httpx
from cheque_clearance.config import settings
from cheque_clearance.domain.exceptions import UpstreamUnavailableError
from cheque_clearance.domain.snapshot import PaymentSnapshot
from cheque_clearance.infrastructure.observability.metrics import publish_latency_histogram, publish_failure_counter

logger = logging.getLogger(__name__)


class StatusPublisher:
    """Writes an order's annotation bag on the obligation service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.obligation_service_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.publish_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.publish_backoff_base
        self.transport = transport

    async def publish(self, order_id: str, snapshot: PaymentSnapshot) -> None:
        """
        Replace the order's notes with the snapshot in a single request.

        The whole bag travels in one PUT, so the obligation service swaps it
        atomically and a reader never sees half of an update.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx errors and network failures, including timeouts
        - 409 means the service already holds a newer revision: delivered

        Raises:
            UpstreamUnavailableError: After the final failed attempt, or on
                a 4xx the service will never accept
        """
        payload = {"notes": snapshot.to_notes()}
        url = f"{self.base_url}/orders/{order_id}/notes"
        attempt = 0

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with publish_latency_histogram.time():
                        response = await client.put(url, json=payload)
                    if response.status_code == 409:
                        logger.warning(
                            "Obligation service holds a newer snapshot",
                            extra={"order_id": order_id, "revision": snapshot.revision, "step": "publish_superseded"},
                        )
                        return
                    if 400 <= response.status_code < 500:
                        publish_failure_counter.inc()
                        raise UpstreamUnavailableError(
                            f"Obligation service rejected snapshot for order {order_id}: {response.status_code}"
                        )
                    response.raise_for_status()
                    return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    publish_failure_counter.inc()

                    if attempt >= self.max_retries:
                        # Final failure after all retries
                        raise UpstreamUnavailableError(
                            f"Obligation service unavailable after {attempt} attempts: {e}"
                        ) from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
