"""sales-admin command line."""

import io

import pytest

from app.cli import main
from app.models.api_key import ApiKey


@pytest.fixture
def run(session_factory, rate_limiter):
    def _run(*argv):
        out = io.StringIO()
        code = main(list(argv), session_factory=session_factory, limiter_factory=lambda: rate_limiter, out=out)
        return code, out.getvalue()

    return _run


def test_generate_key_prints_raw_key_once(run, db_session):
    code, output = run("generate-key", "Web frontend", "--client", "webapp", "--app-version", "2.1")

    assert code == 0
    stored = db_session.query(ApiKey).one()
    raw = [line for line in output.splitlines() if line.startswith("ak_")]
    assert len(raw) == 1
    assert raw[0][:8] == stored.key_prefix
    assert stored.metadata_["client"] == "webapp"
    assert stored.metadata_["version"] == "2.1"
    assert stored.metadata_["created_by"] == "cli"
    assert "60 req/min" in output


def test_generate_internal_key_warns(run):
    code, output = run("generate-key", "Gateway", "--type", "internal")
    assert code == 0
    assert "WARNING" in output


def test_generate_key_with_endpoints(run, db_session):
    run("generate-key", "Reports", "--endpoint", "/api/v1/orders*", "--endpoint", "/api/v1/customers*")
    assert db_session.query(ApiKey).one().allowed_endpoints == ["/api/v1/orders*", "/api/v1/customers*"]


def test_generate_key_rejects_unknown_type(run, db_session, capsys):
    code, _ = run("generate-key", "Nope", "--type", "root")
    assert code == 1
    assert "Invalid type" in capsys.readouterr().err
    assert db_session.query(ApiKey).count() == 0


def test_disable_and_enable(run, api_key_service, db_session):
    key_id = api_key_service.generate("Web").api_key.id

    code, output = run("manage-key", str(key_id), "disable")
    assert code == 0
    assert "disabled" in output

    code, output = run("manage-key", str(key_id), "disable")
    assert code == 0
    assert "already inactive" in output

    run("manage-key", str(key_id), "enable")
    db_session.expire_all()
    assert db_session.get(ApiKey, key_id).is_active is True


def test_info_shows_masked_key_and_usage(run, api_key_service):
    issued = api_key_service.generate("Web", metadata={"client": "webapp"})
    api_key_service.authenticate(issued.raw_key, "/api/v1/orders")

    code, output = run("manage-key", str(issued.api_key.id), "info")

    assert code == 0
    assert issued.api_key.masked_key in output
    assert issued.raw_key not in output
    assert "client: webapp" in output
    assert "used: 1/60" in output


def test_unknown_key_id(run, capsys):
    code, _ = run("manage-key", "999", "info")
    assert code == 1
    assert "not found" in capsys.readouterr().err
