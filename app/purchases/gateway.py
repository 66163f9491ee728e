from __future__ import annotations

from abc import ABC, abstractmethod

from flask import Flask, current_app

from app.core.models import PaymentStatus

GATEWAY_STATUS_MAP: dict[str, PaymentStatus] = {
    "paid": PaymentStatus.SUCCESS,
    "awaiting delivery": PaymentStatus.SUCCESS,
    "delivered": PaymentStatus.SUCCESS,
    "failed": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.FAILED,
    "expired": PaymentStatus.EXPIRED,
}


def map_gateway_status(raw_status: str | None) -> PaymentStatus:
    normalized = " ".join((raw_status or "").strip().lower().split())
    return GATEWAY_STATUS_MAP.get(normalized, PaymentStatus.INITIATED)


class PaymentGateway(ABC):
    """Client for the external payment provider.

    Only polling is needed here: ``poll`` returns the provider's raw status
    text for a payment's poll URL.
    """

    @abstractmethod
    def poll(self, poll_url: str) -> str:
        ...


def init_gateway(app: Flask, gateway: PaymentGateway | None) -> None:
    app.extensions["payment_gateway"] = gateway


def get_gateway() -> PaymentGateway | None:
    return current_app.extensions.get("payment_gateway")
