"""POST /v1/payment-status/batch - payment status of many orders as seen by the obligation service"""

from fastapi import APIRouter, Depends

from cheque_clearance.api.dependencies import get_clock, get_status_reader
from cheque_clearance.api.v1.schemas import BatchStatusRequest, BatchStatusResponse, PaymentStatusItem
from cheque_clearance.infrastructure.clients.status_reader import StatusReader

router = APIRouter()


@router.post("/payment-status/batch", response_model=BatchStatusResponse)
async def get_payment_status_batch(
    body: BatchStatusRequest,
    reader: StatusReader = Depends(get_status_reader),
    clock=Depends(get_clock),
):
    """
    Read each order's published snapshot and project it as of now.

    Orders whose snapshot cannot be fetched come back with the default
    status and `degraded: true`; the response itself never fails for them.
    """
    views = await reader.fetch_payment_statuses(body.order_ids, clock())
    return BatchStatusResponse(
        items=[
            PaymentStatusItem(
                order_id=view.order_id,
                payment_status=view.payment_status,
                cheque_status=view.cheque_status,
                degraded=view.degraded,
            )
            for view in views
        ]
    )
