import json

import httpx
import pytest

from petmatch.services.notifications import NOT_FOUND, TRANSPORT_ERROR, LoggingGateway, PushGateway

pytestmark = pytest.mark.anyio


class Sleeps:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def _gateway(repo, handler, sleep=None, max_attempts=3):
    return PushGateway(
        repo,
        project_id="mypet-test",
        access_token="secret",
        endpoint="https://fcm.test",
        max_attempts=max_attempts,
        transport=httpx.MockTransport(handler),
        sleep=sleep or Sleeps(),
    )


@pytest.fixture
async def user(repo):
    return await repo.create_user("owner@example.com", fcm_token="device-1", user_id="U1")


async def test_sends_fcm_v1_message(repo, user):
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json={"name": "projects/mypet-test/messages/42"})

    res = await _gateway(repo, handler).send("U1", "Possible Match Found", "score 13", context_id="F1")

    assert res.ok is True
    assert res.delivery_id == "projects/mypet-test/messages/42"
    req = seen[0]
    assert str(req.url) == "https://fcm.test/v1/projects/mypet-test/messages:send"
    assert req.headers["Authorization"] == "Bearer secret"
    msg = json.loads(req.content)["message"]
    assert msg["token"] == "device-1"
    assert msg["notification"] == {"title": "Possible Match Found", "body": "score 13"}
    assert msg["data"] == {"matchPetId": "F1"}


async def test_unknown_user_is_not_found(repo):
    def handler(request):
        raise AssertionError("should not be called")

    res = await _gateway(repo, handler).send("ghost", "t", "b")
    assert res.ok is False
    assert res.error == NOT_FOUND


async def test_missing_token_is_not_found(repo):
    await repo.create_user("x@example.com", user_id="U2")

    def handler(request):
        raise AssertionError("should not be called")

    res = await _gateway(repo, handler).send("U2", "t", "b")
    assert res.error == NOT_FOUND


async def test_server_errors_retry_then_give_up(repo, user):
    attempts = []
    sleeps = Sleeps()

    def handler(request):
        attempts.append(request)
        return httpx.Response(503, text="unavailable")

    res = await _gateway(repo, handler, sleep=sleeps).send("U1", "t", "b")

    assert res.ok is False
    assert res.error == TRANSPORT_ERROR
    assert "503" in res.detail
    assert len(attempts) == 3
    assert sleeps.calls == [2, 4]


async def test_transport_error_then_success(repo, user):
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"name": "msg-2"})

    res = await _gateway(repo, handler).send("U1", "t", "b")

    assert res.ok is True
    assert res.delivery_id == "msg-2"
    assert len(attempts) == 2


async def test_client_error_is_not_retried(repo, user):
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(400, json={"error": "INVALID_ARGUMENT"})

    res = await _gateway(repo, handler).send("U1", "t", "b")
    assert res.error == TRANSPORT_ERROR
    assert len(attempts) == 1


async def test_unregistered_token_is_not_found(repo, user):
    res = await _gateway(repo, lambda request: httpx.Response(404, json={"error": "UNREGISTERED"})).send(
        "U1", "t", "b"
    )
    assert res.error == NOT_FOUND


async def test_logging_gateway(repo, user, caplog):
    caplog.set_level("INFO")
    res = await LoggingGateway(repo).send("U1", "Possible Match Found", "score 13", context_id="F1")
    assert res.ok is True
    assert "Possible Match Found" in caplog.text
