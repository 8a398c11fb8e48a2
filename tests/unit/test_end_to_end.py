"""End-to-end tests through the real wiring, with HTTP and AWS mocked.

``build_use_case`` assembles the same object graph the service runs with;
provider APIs are served by ``httpx.MockTransport`` and boto3 clients are
``MagicMock`` instances.
"""

import base64
import json
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from commit_mirror.infrastructure.config import Settings
from commit_mirror.interface.app import create_app
from commit_mirror.interface import dependencies
from commit_mirror.interface.dependencies import build_use_case, get_use_case
from commit_mirror.interface.queue_handler import handle_batch
from commit_mirror.interface.schemas import parse_job_message

JOB = {
    "jobId": "job-1",
    "data": {
        "repository": "https://github.com/acme/widgets",
        "commitId": "abc123",
        "status": "success",
    },
}


def github_api(fail_listing=False):
    def handler(request: httpx.Request) -> httpx.Response:
        if fail_listing:
            return httpx.Response(500)
        if request.url.path == "/repos/acme/widgets/commits/abc123":
            return httpx.Response(200, json={"files": [{"filename": "a.ts"}]})
        if request.url.path == "/repos/acme/widgets/contents/a.ts":
            return httpx.Response(
                200,
                json={"type": "file", "encoding": "base64", "content": base64.b64encode(b"x").decode()},
            )
        return httpx.Response(404)

    return handler


@pytest.fixture
def aws_clients(encrypt_value):
    dynamo = MagicMock()
    dynamo.get_item.return_value = {"Item": {"value": {"S": encrypt_value("ghp_token")}}}
    secrets = MagicMock()
    secrets.get_secret_value.return_value = {"SecretString": "0123456789abcdef0123456789abcdef"}
    events = MagicMock()
    events.put_events.return_value = {"FailedEntryCount": 0, "Entries": [{}]}
    return {"s3": MagicMock(), "events": events, "dynamodb": dynamo, "secretsmanager": secrets}


@pytest.fixture
def settings():
    return Settings(
        s3_git_files_bucket_name="bucket",
        titvo_event_bus_name="bus",
        max_concurrent_uploads=4,
    )


def make_use_case(settings, aws_clients, handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return build_use_case(settings, http, aws_clients)


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_single_file_commit(self, settings, aws_clients):
        use_case = make_use_case(settings, aws_clients, github_api())

        outcome = await use_case.execute(parse_job_message(JOB))

        assert outcome.success is True
        assert outcome.uploaded_keys == ["abc123/a.ts"]
        aws_clients["s3"].put_object.assert_called_once()
        assert aws_clients["s3"].put_object.call_args.kwargs["Key"] == "abc123/a.ts"
        aws_clients["events"].put_events.assert_called_once()
        detail = json.loads(aws_clients["events"].put_events.call_args.kwargs["Entries"][0]["Detail"])
        assert detail["data"] == {"commit_id": "abc123", "uploaded_files": ["abc123/a.ts"]}

    @pytest.mark.asyncio
    async def test_provider_failure_still_emits_once(self, settings, aws_clients):
        use_case = make_use_case(settings, aws_clients, github_api(fail_listing=True))

        outcome = await use_case.execute(parse_job_message(JOB))

        assert outcome.success is False
        assert outcome.uploaded_keys == []
        aws_clients["s3"].put_object.assert_not_called()
        aws_clients["events"].put_events.assert_called_once()
        detail = json.loads(aws_clients["events"].put_events.call_args.kwargs["Entries"][0]["Detail"])
        assert detail["success"] is False

    @pytest.mark.asyncio
    async def test_queue_batch_reports_bad_records(self, settings, aws_clients):
        use_case = make_use_case(settings, aws_clients, github_api())
        event = {
            "Records": [
                {"messageId": "m1", "body": json.dumps(JOB)},
                {"messageId": "m2", "body": "{broken"},
            ]
        }

        result = await handle_batch(event, use_case)

        assert [o.job_id for o in result.outcomes] == ["job-1"]
        assert result.outcomes[0].data.uploaded_files == ["abc123/a.ts"]
        assert [f.itemIdentifier for f in result.batchItemFailures] == ["m2"]


class TestHttpApi:
    @pytest.fixture
    def client(self, settings, aws_clients):
        use_case = make_use_case(settings, aws_clients, github_api())
        app = create_app()
        app.dependency_overrides[get_use_case] = lambda: use_case
        return TestClient(app)

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_post_job(self, client):
        resp = client.post("/jobs", json=JOB)

        assert resp.status_code == 200
        assert resp.json() == {
            "job_id": "job-1",
            "success": True,
            "message": "Commit abc123 processed successfully.",
            "data": {"commit_id": "abc123", "uploaded_files": ["abc123/a.ts"]},
        }

    def test_post_job_validation_error(self, client):
        resp = client.post("/jobs", json={"jobId": "x", "data": {"commitId": "c"}})

        assert resp.status_code == 422
        assert resp.json()["status"] == "error"

    def test_post_batch(self, client):
        resp = client.post(
            "/jobs/batch",
            json={"Records": [{"messageId": "m1", "body": json.dumps(JOB)}]},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["batchItemFailures"] == []
        assert body["outcomes"][0]["success"] is True


def test_post_job_before_startup_is_configuration_error(monkeypatch):
    monkeypatch.setattr(dependencies, "_use_case", None)
    client = TestClient(create_app())

    resp = client.post("/jobs", json=JOB)

    assert resp.status_code == 500
    assert resp.json() == {
        "status": "error",
        "message": "Service is not initialised; startup() was not called.",
    }
