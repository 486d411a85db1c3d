import asyncio

import httpx
import pytest

from inflio.services.retry import request_with_retry, retry_delay, upload_with_retry, with_retry


class UploadError(Exception):
    def __init__(self, status):
        super().__init__(f"status {status}")
        self.status = status


@pytest.mark.unit
def test_retry_delay_is_capped():
    assert retry_delay(1, 1.0, 30.0, 2.0) == 1.0
    assert retry_delay(3, 1.0, 30.0, 2.0) == 4.0
    assert retry_delay(10, 1.0, 30.0, 2.0) == 30.0


@pytest.mark.unit
def test_with_retry_reraises_last_error(fake_sleep):
    calls = []

    async def failing():
        calls.append(1)
        raise httpx.ConnectError("down")

    with pytest.raises(httpx.ConnectError):
        asyncio.run(with_retry(failing, max_attempts=3, sleep=fake_sleep))

    assert len(calls) == 3
    assert fake_sleep.delays == [1.0, 2.0]


@pytest.mark.unit
def test_with_retry_stops_on_non_retryable(fake_sleep):
    calls = []

    async def failing():
        calls.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        asyncio.run(with_retry(failing, sleep=fake_sleep))

    assert len(calls) == 1


@pytest.mark.unit
def test_request_with_retry_retries_server_errors(fake_sleep):
    statuses = iter([503, 500, 200])

    def handler(request):
        return httpx.Response(next(statuses), json={"ok": True})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await request_with_retry(client, "GET", "https://api.test/x", sleep=fake_sleep)

    response = asyncio.run(run())
    assert response.status_code == 200
    assert fake_sleep.delays == [1.0, 2.0]


@pytest.mark.unit
def test_request_with_retry_returns_client_errors_untouched(fake_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": {"message": "bad"}})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await request_with_retry(client, "POST", "https://api.test/x", sleep=fake_sleep)

    response = asyncio.run(run())
    assert response.status_code == 400
    assert len(calls) == 1


@pytest.mark.unit
def test_upload_with_retry_treats_4xx_as_final(fake_sleep):
    calls = []

    async def upload():
        calls.append(1)
        raise UploadError(413)

    with pytest.raises(UploadError):
        asyncio.run(upload_with_retry(upload, sleep=fake_sleep))

    assert len(calls) == 1
