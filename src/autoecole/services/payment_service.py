"""Premium subscription plans and payments."""

from __future__ import annotations

from autoecole.api.client import ApiClient, expect_field
from autoecole.services.schemas import Payment, PaymentPlan, PaymentReceipt, PlanDuration


class PaymentService:
    def __init__(self, client: ApiClient):
        self.client = client

    def list_plans(self) -> list[PaymentPlan]:
        payload = self.client.get("/payment/plans")
        return [PaymentPlan.model_validate(p) for p in expect_field(payload, "plans")]

    def create_payment(self, plan: PlanDuration, payment_method: str = "card") -> PaymentReceipt:
        """Start a payment; the receipt may carry a URL to complete it."""
        payload = self.client.post(
            "/payment/create", {"plan": plan, "paymentMethod": payment_method}
        )
        return PaymentReceipt.model_validate(payload)

    def verify_payment(self, transaction_id: str) -> Payment:
        payload = self.client.get(f"/payment/verify/{transaction_id}")
        return Payment.model_validate(expect_field(payload, "payment"))

    def payment_history(self) -> list[Payment]:
        payload = self.client.get("/payment/history")
        return [Payment.model_validate(p) for p in expect_field(payload, "payments")]
