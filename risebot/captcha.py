import asyncio
from typing import Any, Dict, Optional
from aiohttp import ClientSession, ClientTimeout, TCPConnector
from httpx import AsyncClient

from risebot.logger import logger
from risebot.proxy import create_ssl_context


class CreateTaskSolver:
    """Anti-Captcha style createTask/getTaskResult API, shared by CapMonster."""

    BASE_URLS = {
        "anticaptcha": "https://api.anti-captcha.com",
        "capmonster": "https://api.capmonster.cloud",
    }

    def __init__(self, provider: str, api_key: str, session: AsyncClient, poll_interval: float = 5):
        self.provider = provider
        self.api_key = api_key
        self.base_url = self.BASE_URLS[provider]
        self.session = session
        self.poll_interval = poll_interval

    async def create_turnstile_task(self, sitekey: str, pageurl: str) -> Optional[int]:
        payload = {
            "clientKey": self.api_key,
            "task": {
                "type": "TurnstileTaskProxyless",
                "websiteURL": pageurl,
                "websiteKey": sitekey,
            },
        }
        try:
            response = await self.session.post(f"{self.base_url}/createTask", json=payload, timeout=30)
            result = response.json()

            if result.get("errorId") == 0 and result.get("taskId"):
                return result["taskId"]

            logger.error(f"Error creating Turnstile task with {self.provider}: {result.get('errorDescription', result)}")
            return None

        except Exception as e:
            logger.error(f"Error creating Turnstile task with {self.provider}: {e}")
            return None

    async def get_task_result(self, task_id: int, max_attempts: int = 30) -> Optional[str]:
        payload = {"clientKey": self.api_key, "taskId": task_id}

        for _ in range(max_attempts):
            try:
                response = await self.session.post(f"{self.base_url}/getTaskResult", json=payload, timeout=30)
                result = response.json()

                if result.get("errorId", 0) != 0:
                    logger.error(f"Error getting result with {self.provider}: {result.get('errorDescription', result)}")
                    return None

                if result.get("status") == "ready":
                    return result.get("solution", {}).get("token")

                await asyncio.sleep(self.poll_interval)

            except Exception as e:
                logger.error(f"Error getting result with {self.provider}: {e}")
                return None

        logger.error(f"Max polling attempts reached without getting a result with {self.provider}")
        return None

    async def solve_turnstile(self, sitekey: str, pageurl: str) -> Optional[str]:
        task_id = await self.create_turnstile_task(sitekey, pageurl)
        if not task_id:
            return None
        return await self.get_task_result(task_id)


class TwoCaptcha:
    """2captcha in.php/res.php API, JSON responses."""

    BASE_URL = "https://2captcha.com"

    def __init__(self, api_key: str, poll_interval: float = 5):
        self.api_key = api_key
        self.poll_interval = poll_interval
        self.ssl_context = create_ssl_context()

    async def _get(self, session: ClientSession, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        async with session.get(f"{self.BASE_URL}/{path}", params={**params, "key": self.api_key, "json": 1}) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def submit_turnstile(self, session: ClientSession, sitekey: str, pageurl: str) -> Optional[str]:
        result = await self._get(session, "in.php", {"method": "turnstile", "sitekey": sitekey, "pageurl": pageurl})
        if result.get("status") != 1:
            logger.warning(f"2Captcha rejected task: {result.get('request')}")
            return None
        logger.debug(f"2Captcha Request ID: {result['request']}")
        return result["request"]

    async def poll_result(self, session: ClientSession, request_id: str, max_attempts: int = 30) -> Optional[str]:
        for _ in range(max_attempts):
            await asyncio.sleep(self.poll_interval)
            result = await self._get(session, "res.php", {"action": "get", "id": request_id})
            if result.get("status") == 1:
                return result["request"]
            if result.get("request") != "CAPCHA_NOT_READY":
                logger.warning(f"2Captcha result: {result.get('request')}")
                return None
        logger.error("2Captcha did not return a token in time")
        return None

    async def solve_turnstile(self, sitekey: str, pageurl: str, retries: int = 3) -> Optional[str]:
        for attempt in range(1, retries + 1):
            try:
                connector = TCPConnector(ssl=self.ssl_context)
                async with ClientSession(connector=connector, timeout=ClientTimeout(total=60)) as session:
                    request_id = await self.submit_turnstile(session, sitekey, pageurl)
                    if request_id:
                        token = await self.poll_result(session, request_id)
                        if token:
                            logger.success("Turnstile solved successfully via 2Captcha")
                            return token
            except Exception as e:
                logger.warning(f"2Captcha attempt {attempt}/{retries} failed: {str(e)}")
            if attempt < retries:
                await asyncio.sleep(self.poll_interval)

        logger.error("2Captcha error: no token after retries")
        return None


class CaptchaSolver:

    def __init__(self, provider: str, api_key: Optional[str]):
        self.provider = (provider or "2captcha").lower()
        self.api_key = api_key

    async def solve_turnstile(self, sitekey: str, pageurl: str) -> Optional[str]:
        if not self.api_key:
            logger.warning(f"No API key provided for {self.provider}, skipping captcha")
            return None

        logger.debug(f"Solving captcha using {self.provider.upper()}...")

        if self.provider in CreateTaskSolver.BASE_URLS:
            async with AsyncClient(timeout=60) as client:
                solver = CreateTaskSolver(self.provider, self.api_key, session=client)
                return await solver.solve_turnstile(sitekey, pageurl)

        elif self.provider == "2captcha":
            solver = TwoCaptcha(api_key=self.api_key)
            return await solver.solve_turnstile(sitekey, pageurl)

        else:
            logger.error(f"Unknown captcha provider: {self.provider}")
            return None
