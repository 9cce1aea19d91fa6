from typing import Dict, Protocol

from sociai.shared.logging_utils import info as log_info
from sociai.specs.common.errors import PaymentError
from sociai.specs.models.domain import CreditPlan

PLANS: Dict[str, CreditPlan] = {
    plan.key: plan
    for plan in (
        CreditPlan(key="starter", label="Starter", price="29", credits=100, subscription=True),
        CreditPlan(key="pro", label="Pro", price="89", credits=1000, subscription=True),
        CreditPlan(key="agency", label="Agency", price="299", credits=5000, subscription=True),
        CreditPlan(key="mini", label="Mini pack", price="9", credits=150),
        CreditPlan(key="power", label="Power pack", price="19", credits=400),
        CreditPlan(key="supernova", label="Supernova pack", price="39", credits=1000),
    )
}


class PaymentGateway(Protocol):
    def complete_purchase(self, plan_key: str) -> int:
        """Charge for ``plan_key`` and return the number of credits granted."""


class MockPaymentGateway:
    """Accepts every known plan without charging anything."""

    def complete_purchase(self, plan_key: str) -> int:
        plan = PLANS.get(plan_key)
        if plan is None:
            raise PaymentError(f"Unknown plan or pack '{plan_key}'", details={"plan": plan_key})
        log_info(None, "payment:completed", plan=plan.key, credits=plan.credits)
        return plan.credits
