from abc import ABC, abstractmethod

from bookflow.application.dto.gateway_responses import PaymentStatusDTO


class PaymentApiPort(ABC):
    @abstractmethod
    async def get_status(self, checkout_handle: str) -> PaymentStatusDTO:
        raise NotImplementedError
