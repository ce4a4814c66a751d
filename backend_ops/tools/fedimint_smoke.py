"""
Federation manager integration smoke test.

Runs create -> connect -> client -> balance -> issue e-cash -> invoice in
order. The first failure stops the run; the result records how far it got.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from backend_ops.exceptions import OpsError
from backend_ops.monitoring.logger import get_logger
from backend_ops.services.federation import FederationManager

logger = get_logger(__name__)


@dataclass
class SmokeResult:
    completed: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None


def run_fedimint_smoke(manager: FederationManager, settings) -> SmokeResult:
    result = SmokeResult()
    state: dict = {}

    def create():
        state["federation_id"] = manager.create_federation(
            f"{settings.name} (smoke test)",
            settings.description,
            settings.guardian_endpoints,
            settings.threshold,
        )
        return state["federation_id"]

    def connect():
        manager.connect_to_federation(state["federation_id"])

    def client():
        state["client"] = manager.get_client(state["federation_id"])

    def balance():
        return state["client"].get_balance()

    def ecash():
        notes = state["client"].issue_ecash(settings.smoke_ecash_amount)
        return f"{len(notes)} note(s)"

    def invoice():
        inv = state["client"].create_lightning_invoice(settings.smoke_invoice_amount, "backend-ops smoke test")
        return inv[:24] + "..." if len(inv) > 24 else inv

    steps: List[Tuple[str, Callable[[], Any]]] = [
        ("create_federation", create),
        ("connect_to_federation", connect),
        ("get_client", client),
        ("get_balance", balance),
        ("issue_ecash", ecash),
        ("create_lightning_invoice", invoice),
    ]

    for name, step in steps:
        logger.info("SMOKE_STEP_STARTED", step=name)
        try:
            outcome = step()
        except OpsError as e:
            logger.error("SMOKE_STEP_FAILED", step=name, error=str(e))
            result.failed_step = name
            result.error = str(e)
            return result
        logger.info("SMOKE_STEP_PASSED", step=name, outcome=outcome)
        result.completed.append(name)

    logger.info("SMOKE_TEST_PASSED", federation_id=state.get("federation_id"))
    return result
