from __future__ import annotations

import logging
from dataclasses import dataclass, field


@dataclass
class AdminSession:
    """Credentials of the operator driving the dashboard, passed explicitly to gateways."""

    token: str | None = None
    logged_out: bool = field(default=False)

    def auth_headers(self) -> dict[str, str]:
        if self.token and not self.logged_out:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def logout(self) -> None:
        if not self.logged_out:
            logging.getLogger(__name__).warning("Admin session rejected by backend; logging out")
        self.token = None
        self.logged_out = True
