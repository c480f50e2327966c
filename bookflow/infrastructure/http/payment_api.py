from __future__ import annotations

from bookflow.application.dto.gateway_responses import PaymentStatusDTO
from bookflow.application.ports.payment_api import PaymentApiPort
from bookflow.infrastructure.http.gateway import ApiGateway


class HttpPaymentApi(PaymentApiPort):
    def __init__(self, gateway: ApiGateway) -> None:
        self._gateway = gateway

    async def get_status(self, checkout_handle: str) -> PaymentStatusDTO:
        data = await self._gateway.get(f"/mpesa/status/{checkout_handle}")
        return PaymentStatusDTO.model_validate(data if isinstance(data, dict) else {})
