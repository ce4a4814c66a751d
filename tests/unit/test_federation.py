"""
Tests for federation identifiers, the federation manager client and the
generated configuration block.
"""
import re

import pytest
import requests

from backend_ops.config.config import FederationSettings
from backend_ops.exceptions import FederationError, InviteCreationError
from backend_ops.services.federation import (
    FederationIdentity,
    FederationManager,
    build_config_entries,
    generate_federation_config,
    generate_identifier,
    render_config_block,
)

FED_ID_SHAPE = re.compile(r"^family_fed_\d+_[0-9a-f]+$")


@pytest.fixture
def manager(http_session):
    return FederationManager("http://fedmgr.local:8080/", "tok", session=http_session)


@pytest.fixture
def settings():
    return FederationSettings()


class TestIdentifiers:

    def test_federation_id_shape(self):
        assert FED_ID_SHAPE.match(generate_identifier("family_fed"))

    def test_known_inputs(self):
        assert generate_identifier("family_fed", now_ms=1700000000123, random_bytes=b"\x00\xff\x10") == (
            "family_fed_1700000000123_00ff10"
        )

    def test_same_millisecond_still_distinct(self):
        ids = {generate_identifier("family_fed", now_ms=1700000000000) for _ in range(50)}
        assert len(ids) == 50

    def test_identity_pair(self):
        identity = FederationIdentity.generate(now_ms=1700000000000)

        assert FED_ID_SHAPE.match(identity.federation_id)
        assert identity.mint_id.startswith("family_mint_1700000000000_")
        assert identity.created_at.year == 2023


class TestFederationManager:

    def test_create_federation_posts_payload(self, manager, http_session, make_response):
        http_session.request.return_value = make_response(201, {"federation_id": "fed123"})

        fed_id = manager.create_federation("Fam", "desc", ["http://g1", "http://g2"], 2)

        assert fed_id == "fed123"
        method, url = http_session.request.call_args.args
        assert (method, url) == ("POST", "http://fedmgr.local:8080/federations")
        assert http_session.request.call_args.kwargs["json"] == {
            "name": "Fam",
            "description": "desc",
            "guardian_endpoints": ["http://g1", "http://g2"],
            "threshold": 2,
        }

    def test_threshold_above_guardian_count(self, manager, http_session):
        with pytest.raises(FederationError, match="Threshold 3"):
            manager.create_federation("Fam", "desc", ["http://g1", "http://g2"], 3)
        http_session.request.assert_not_called()

    def test_error_body_is_surfaced(self, manager, http_session, make_response):
        http_session.request.return_value = make_response(500, {"message": "guardian g2 offline", "code": "GUARDIAN_DOWN"})

        with pytest.raises(FederationError, match="guardian g2 offline") as exc_info:
            manager.create_federation("Fam", "desc", ["http://g1", "http://g2"], 2)

        assert exc_info.value.status_code == 500
        assert exc_info.value.code == "GUARDIAN_DOWN"

    def test_unreachable_manager(self, manager, http_session):
        http_session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(FederationError, match="unreachable"):
            manager.connect_to_federation("fed123")

    def test_invite_failure_keeps_federation_id(self, manager, http_session, make_response):
        http_session.request.return_value = make_response(503, {"message": "busy"})

        with pytest.raises(InviteCreationError) as exc_info:
            manager.create_invite("fed123")

        assert exc_info.value.federation_id == "fed123"

    @pytest.mark.parametrize("body", [["fed123"], "fed123", 42])
    def test_non_object_body_is_a_federation_error(self, manager, http_session, make_response, body):
        http_session.request.return_value = make_response(201, body)

        with pytest.raises(FederationError, match="expected a JSON object"):
            manager.create_federation("Fam", "desc", ["http://g1", "http://g2"], 2)

    def test_non_numeric_balance(self, manager, http_session, make_response):
        http_session.request.side_effect = [make_response(200, {}), make_response(200, {"balance": "lots"})]
        manager.connect_to_federation("fed123")

        with pytest.raises(FederationError, match="non-numeric balance"):
            manager.get_client("fed123").get_balance()

    def test_client_requires_connection(self, manager):
        with pytest.raises(FederationError, match="Not connected"):
            manager.get_client("fed123")

    def test_client_operations(self, manager, http_session, make_response):
        http_session.request.side_effect = [
            make_response(200, {"connected": True}),
            make_response(200, {"balance": 2500}),
            make_response(200, {"notes": ["note-a", "note-b"]}),
            make_response(200, {"invoice": "lnbc10u1p..."}),
        ]

        manager.connect_to_federation("fed123")
        client = manager.get_client("fed123")

        assert client.get_balance() == 2500
        assert client.issue_ecash(1000) == ["note-a", "note-b"]
        assert client.create_lightning_invoice(1000, "test").startswith("lnbc")
        invoice_call = http_session.request.call_args_list[-1]
        assert invoice_call.args[1].endswith("/federations/fed123/ln/invoice")
        assert invoice_call.kwargs["json"] == {"amount": 1000, "memo": "test"}

    def test_issue_ecash_rejects_non_positive(self, manager, http_session, make_response):
        http_session.request.return_value = make_response(200, {})
        manager.connect_to_federation("fed123")

        with pytest.raises(FederationError, match="positive"):
            manager.get_client("fed123").issue_ecash(0)


class TestConfigBlock:

    def test_block_is_flat_key_value(self, settings):
        identity = FederationIdentity("family_fed_1_ab", "family_mint_1_cd", 1700000000000)
        block = render_config_block(build_config_entries(identity, "fed123", "fed11invite", settings))

        lines = [line for line in block.splitlines() if not line.startswith("#")]
        entries = dict(line.split("=", 1) for line in lines)
        assert entries["FAMILY_FEDERATION_ID"] == "family_fed_1_ab"
        assert entries["FAMILY_MINT_ID"] == "family_mint_1_cd"
        assert entries["FEDIMINT_FEDERATION_ID"] == "fed123"
        assert entries["FEDIMINT_INVITE_CODE"] == "fed11invite"
        assert entries["FEDIMINT_GUARDIAN_COUNT"] == str(len(settings.guardian_endpoints))
        assert entries["FEDIMINT_CONSENSUS_THRESHOLD"] == str(settings.threshold)

    def test_generate_creates_federation_then_invite(self, manager, http_session, make_response, settings):
        http_session.request.side_effect = [
            make_response(201, {"federation_id": "fed123"}),
            make_response(201, {"invite_code": "fed11abc"}),
        ]

        block = generate_federation_config(manager, settings)

        assert "FEDIMINT_INVITE_CODE=fed11abc" in block
        assert re.search(r"^FAMILY_FEDERATION_ID=family_fed_\d+_[0-9a-f]+$", block, re.MULTILINE)
        urls = [c.args[1] for c in http_session.request.call_args_list]
        assert urls[1].endswith("/federations/fed123/invites")

    def test_invite_failure_propagates_without_cleanup(self, manager, http_session, make_response, settings):
        http_session.request.side_effect = [
            make_response(201, {"federation_id": "fed123"}),
            make_response(500, {"message": "boom"}),
        ]

        with pytest.raises(InviteCreationError):
            generate_federation_config(manager, settings)

        assert http_session.request.call_count == 2


def test_settings_reject_threshold_above_guardians(monkeypatch):
    monkeypatch.setenv("FEDERATION_GUARDIAN_ENDPOINTS", '["http://g1", "http://g2"]')
    monkeypatch.setenv("FEDERATION_THRESHOLD", "3")

    with pytest.raises(ValueError, match="exceeds guardian count"):
        FederationSettings()
