from fastapi import APIRouter, Depends

from ...api import deps
from ...db import schemas
from ...services.container import ServiceContainer

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/return", response_model=schemas.OperationOutcome)
def payment_return(
    payload: schemas.PaymentReturn,
    container: ServiceContainer = Depends(deps.get_container),
):
    return deps.unwrap(container.bookings.handle_payment_return(payload.url))
