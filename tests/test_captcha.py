from unittest.mock import AsyncMock, MagicMock

import pytest

from risebot.captcha import CaptchaSolver, CreateTaskSolver, TwoCaptcha


def json_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


class TestCreateTaskSolver:
    @pytest.mark.asyncio
    async def test_polls_until_ready(self):
        session = MagicMock()
        session.post = AsyncMock(side_effect=[
            json_response({"errorId": 0, "taskId": 17}),
            json_response({"errorId": 0, "status": "processing"}),
            json_response({"errorId": 0, "status": "ready", "solution": {"token": "tok"}}),
        ])
        solver = CreateTaskSolver("capmonster", "key", session=session, poll_interval=0)

        assert await solver.solve_turnstile("sitekey", "https://portal.risechain.com") == "tok"

        create_payload = session.post.await_args_list[0].kwargs["json"]
        assert create_payload["task"]["type"] == "TurnstileTaskProxyless"
        assert create_payload["task"]["websiteKey"] == "sitekey"
        assert session.post.await_args_list[0].args[0] == "https://api.capmonster.cloud/createTask"

    @pytest.mark.asyncio
    async def test_create_error_returns_none(self):
        session = MagicMock()
        session.post = AsyncMock(return_value=json_response({"errorId": 1, "errorDescription": "ERROR_KEY"}))
        solver = CreateTaskSolver("anticaptcha", "key", session=session)

        assert await solver.solve_turnstile("sitekey", "https://example.org") is None
        assert session.post.await_count == 1


class TestCaptchaSolver:
    @pytest.mark.asyncio
    async def test_without_key_returns_none(self):
        assert await CaptchaSolver("2captcha", None).solve_turnstile("sitekey", "https://example.org") is None

    @pytest.mark.asyncio
    async def test_unknown_provider_returns_none(self):
        assert await CaptchaSolver("nocaptcha", "key").solve_turnstile("sitekey", "https://example.org") is None


class TestTwoCaptcha:
    @pytest.mark.asyncio
    async def test_submit_then_poll(self):
        solver = TwoCaptcha("key", poll_interval=0)
        solver._get = AsyncMock(side_effect=[
            {"status": 1, "request": "812"},
            {"status": 0, "request": "CAPCHA_NOT_READY"},
            {"status": 1, "request": "turnstile-token"},
        ])
        session = MagicMock()

        request_id = await solver.submit_turnstile(session, "sitekey", "https://portal.risechain.com")
        token = await solver.poll_result(session, request_id)

        assert request_id == "812"
        assert token == "turnstile-token"
        assert solver._get.await_args_list[1].args[2] == {"action": "get", "id": "812"}

    @pytest.mark.asyncio
    async def test_poll_stops_on_error(self):
        solver = TwoCaptcha("key", poll_interval=0)
        solver._get = AsyncMock(return_value={"status": 0, "request": "ERROR_CAPTCHA_UNSOLVABLE"})

        assert await solver.poll_result(MagicMock(), "812") is None
        assert solver._get.await_count == 1
