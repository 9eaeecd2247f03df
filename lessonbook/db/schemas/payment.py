from pydantic import BaseModel


class PaymentReturn(BaseModel):
    url: str
