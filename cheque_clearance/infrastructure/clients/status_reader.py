"""Obligation service client that reads published snapshots back for status displays"""

import asyncio
import logging
from datetime import date, datetime
from typing import List, Optional, Sequence
import httpx
from cheque_clearance.config import settings
from cheque_clearance.domain.exceptions import SnapshotDecodeError, UpstreamUnavailableError
from cheque_clearance.domain.models import OrderPaymentView, PaymentStatus
from cheque_clearance.domain.snapshot import PaymentSnapshot, ChequeStatusSnapshot, decode_notes
from cheque_clearance.infrastructure.observability.logging import log_degraded_read
from cheque_clearance.infrastructure.observability.metrics import status_fetch_degraded_counter

logger = logging.getLogger(__name__)

# Shown for orders with no usable snapshot: unpaid, not yet proven late
DEFAULT_PAYMENT_STATUS = PaymentStatus.PENDING


class StatusReader:
    """Client for the notes endpoint of the obligation service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.obligation_service_base
        self.timeout = timeout or settings.status_fetch_timeout_seconds
        self.transport = transport

    async def fetch_snapshot(self, order_id: str, client: httpx.AsyncClient) -> Optional[PaymentSnapshot]:
        """
        Fetch and decode one order's notes.

        Returns None when the order is unknown to the obligation service or
        carries no snapshot of a supported method.

        Raises:
            UpstreamUnavailableError: On timeout, 5xx or network failure
            SnapshotDecodeError: On a malformed or unsupported snapshot
        """
        try:
            response = await client.get(f"{self.base_url}/orders/{order_id}/notes")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError(f"Obligation service timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailableError(f"Obligation service error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise UpstreamUnavailableError(f"Obligation service unreachable: {e}") from e
        except ValueError as e:
            raise SnapshotDecodeError(f"Invalid notes payload from obligation service: {e}") from e

        if not isinstance(data, dict):
            raise SnapshotDecodeError(f"Notes payload for order {order_id} is not a JSON object")
        notes = data.get("notes") or {}
        if not isinstance(notes, dict):
            raise SnapshotDecodeError(f"Notes for order {order_id} are not a JSON object")
        return decode_notes(notes)

    async def fetch_payment_statuses(
        self,
        order_ids: Sequence[str],
        now: date | datetime,
    ) -> List[OrderPaymentView]:
        """
        Project the payment status of many orders concurrently.

        One order that cannot be fetched or decoded is logged and reported
        with the default projection; it never fails the batch.
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return list(
                await asyncio.gather(*(self._view_for(order_id, client, now) for order_id in order_ids))
            )

    async def _view_for(self, order_id: str, client: httpx.AsyncClient, now: date | datetime) -> OrderPaymentView:
        try:
            snapshot = await self.fetch_snapshot(order_id, client)
        except UpstreamUnavailableError as e:
            status_fetch_degraded_counter.labels(reason="unavailable").inc()
            log_degraded_read(order_id, str(e))
            return OrderPaymentView(order_id=order_id, payment_status=DEFAULT_PAYMENT_STATUS, degraded=True)
        except SnapshotDecodeError as e:
            status_fetch_degraded_counter.labels(reason="malformed").inc()
            log_degraded_read(order_id, str(e))
            return OrderPaymentView(order_id=order_id, payment_status=DEFAULT_PAYMENT_STATUS, degraded=True)
        except Exception:
            # Last resort: one row never fails the batch
            status_fetch_degraded_counter.labels(reason="unexpected").inc()
            logger.exception("Unexpected error reading status snapshot", extra={"order_id": order_id})
            return OrderPaymentView(order_id=order_id, payment_status=DEFAULT_PAYMENT_STATUS, degraded=True)

        if snapshot is None:
            return OrderPaymentView(order_id=order_id, payment_status=DEFAULT_PAYMENT_STATUS)

        cheque_status = snapshot.cheque_status if isinstance(snapshot, ChequeStatusSnapshot) else None
        return OrderPaymentView(
            order_id=order_id,
            payment_status=snapshot.payment_status(now),
            cheque_status=cheque_status,
        )
