"""
Tests for the federation manager smoke test sequence.
"""
from backend_ops.config.config import FederationSettings
from backend_ops.services.federation import FederationManager
from backend_ops.tools.fedimint_smoke import run_fedimint_smoke

ALL_STEPS = [
    "create_federation",
    "connect_to_federation",
    "get_client",
    "get_balance",
    "issue_ecash",
    "create_lightning_invoice",
]


def _manager(http_session):
    return FederationManager("http://fedmgr.local:8080", session=http_session)


def test_all_steps_pass(http_session, make_response):
    http_session.request.side_effect = [
        make_response(201, {"federation_id": "fed123"}),
        make_response(200, {"connected": True}),
        make_response(200, {"balance": 0}),
        make_response(200, {"notes": ["n1"]}),
        make_response(200, {"invoice": "lnbc10u1pjexampleinvoicestring"}),
    ]

    result = run_fedimint_smoke(_manager(http_session), FederationSettings())

    assert result.ok
    assert result.completed == ALL_STEPS


def test_stops_at_first_failure(http_session, make_response):
    http_session.request.side_effect = [
        make_response(201, {"federation_id": "fed123"}),
        make_response(200, {"connected": True}),
        make_response(200, {"balance": 0}),
        make_response(402, {"message": "insufficient guardian signatures"}),
    ]

    result = run_fedimint_smoke(_manager(http_session), FederationSettings())

    assert not result.ok
    assert result.failed_step == "issue_ecash"
    assert "insufficient guardian signatures" in result.error
    assert result.completed == ALL_STEPS[:4]
    assert http_session.request.call_count == 4


def test_create_failure(http_session, make_response):
    http_session.request.return_value = make_response(500, {"message": "guardians unreachable"})

    result = run_fedimint_smoke(_manager(http_session), FederationSettings())

    assert result.failed_step == "create_federation"
    assert result.completed == []


def test_non_object_balance_is_a_step_failure(http_session, make_response):
    http_session.request.side_effect = [
        make_response(201, {"federation_id": "fed123"}),
        make_response(200, {"connected": True}),
        make_response(200, 2500),
    ]

    result = run_fedimint_smoke(_manager(http_session), FederationSettings())

    assert result.failed_step == "get_balance"
    assert "expected a JSON object" in result.error
    assert result.completed == ALL_STEPS[:3]
