"""API and worker-task tests against an in-memory SQLite database."""
import tempfile
from pathlib import Path
from types import SimpleNamespace
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from migrator.api import routes_runs
from migrator.core.workflow import RunStage, RunStatus
from migrator.db.models import ConversionRun
from migrator.db.session import Base, get_db
from migrator.main import app
from migrator.tasks.runs import execute_run

SOURCE = """
function doGetUsers(e) {
  var rows = SpreadsheetApp.getActiveSpreadsheet().getSheetByName('Users').getDataRange().getValues();
  return ContentService.createTextOutput(JSON.stringify(rows));
}
"""


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def client(session_factory, monkeypatch):
    queued = []

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(routes_runs, "run_conversion", SimpleNamespace(delay=queued.append))
    # No context manager: the lifespan would wait for the configured database
    test_client = TestClient(app)
    test_client.queued = queued
    yield test_client
    app.dependency_overrides.clear()


class TestRunsApi:

    def test_health(self, client):
        res = client.get("/v1/health")
        assert res.status_code == 200
        assert res.json()["status"] == "ok"

    def test_create_and_fetch_run(self, client):
        payload = {
            "source_units": [{"filename": "Code.gs", "raw_text": SOURCE}],
            "options": {"targets": ["endpoint"], "project_name": "expense-tracker", "output_root": "/tmp/ignored"},
        }
        res = client.post("/v1/runs", json=payload)
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "QUEUED"
        assert body["stage"] == "CLASSIFY"
        assert body["targets"] == ["endpoint"]
        assert body["persistence"] == "postgres"
        assert client.queued == [body["id"]]

        res = client.get(f"/v1/runs/{body['id']}")
        assert res.status_code == 200
        assert res.json()["project_name"] == "expense-tracker"

    def test_output_root_is_forced_into_workspace(self, client, session_factory):
        payload = {
            "source_units": [{"filename": "Code.gs", "raw_text": SOURCE}],
            "options": {"output_root": "/etc"},
        }
        run_id = client.post("/v1/runs", json=payload).json()["id"]
        with session_factory() as db:
            stored = db.get(ConversionRun, run_id)
            assert stored.request["options"]["output_root"].endswith(run_id)

    def test_unknown_run(self, client):
        res = client.get("/v1/runs/does-not-exist")
        assert res.status_code == 404
        assert res.json()["detail"] == "Run not found"

    def test_rejects_empty_sources(self, client):
        res = client.post("/v1/runs", json={"source_units": []})
        assert res.status_code == 422

    def test_rejects_unknown_target(self, client):
        payload = {
            "source_units": [{"filename": "Code.gs", "raw_text": SOURCE}],
            "options": {"targets": ["desktop"]},
        }
        assert client.post("/v1/runs", json=payload).status_code == 422


def _stored_run(db, source: str, output_root: str) -> ConversionRun:
    run = ConversionRun(
        project_name="expense-tracker",
        targets=["endpoint"],
        persistence="postgres",
        request={
            "source_units": [{"filename": "Code.gs", "raw_text": source}],
            "templates": [],
            "options": {"targets": ["endpoint"], "output_root": output_root, "project_name": "expense-tracker"},
        },
    )
    db.add(run)
    db.commit()
    return run


class TestExecuteRun:

    def test_successful_run(self, session_factory):
        with tempfile.TemporaryDirectory() as temp_dir, session_factory() as db:
            out_dir = Path(temp_dir) / "out"
            run = _stored_run(db, SOURCE, str(out_dir))

            execute_run(db, run.id)

            stored = db.get(ConversionRun, run.id)
            assert stored.status == RunStatus.DONE
            assert stored.stage == RunStage.DONE
            assert stored.result["success"] is True
            assert stored.result["summary"]["endpoint"] == {"emitted": 1, "skipped": 0}
            assert (out_dir / "service" / "src" / "routes" / "users.js").exists()

    def test_collision_marks_run_failed(self, session_factory):
        source = SOURCE + "\nfunction doPostUsers(e) {\n  return ContentService.createTextOutput('ok');\n}\n"
        with tempfile.TemporaryDirectory() as temp_dir, session_factory() as db:
            out_dir = Path(temp_dir) / "out"
            run = _stored_run(db, source, str(out_dir))

            execute_run(db, run.id)

            stored = db.get(ConversionRun, run.id)
            assert stored.status == RunStatus.FAILED
            assert stored.stage == RunStage.FAILED
            assert "collision" in stored.error_message
            assert not out_dir.exists()

    def test_missing_run_is_ignored(self, session_factory):
        with session_factory() as db:
            execute_run(db, "missing")
            assert db.query(ConversionRun).count() == 0
