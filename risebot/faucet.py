import asyncio
from typing import Any, Dict, List, Optional

from aiohttp import ClientSession, ClientTimeout

from risebot.captcha import CaptchaSolver
from risebot.config import Settings
from risebot.pipeline import ActionResult, FAILED, SKIPPED, SUCCESS
from risebot.proxy import build_proxy_config, random_headers
from risebot.utils import get_random_delay

CAPTCHA_NOT_SOLVED = "Captcha not solved"


class FaucetClient:
    def __init__(self, settings: Settings, address: str, log, proxy: Optional[str] = None,
                 captcha_solver: Optional[CaptchaSolver] = None):
        self.settings = settings
        self.address = address
        self.log = log
        self.proxy = proxy
        self.captcha_solver = captcha_solver or CaptchaSolver(settings.captcha_provider, settings.captcha_api_key)

    def _headers(self) -> Dict[str, str]:
        return {**random_headers(origin=self.settings.faucet_page), "Content-Type": "application/json"}

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        connector, proxy_url, proxy_auth = build_proxy_config(self.proxy)
        async with ClientSession(connector=connector, timeout=ClientTimeout(total=120)) as session:
            async with session.request(method, url, headers=self._headers(), proxy=proxy_url,
                                       proxy_auth=proxy_auth, **kwargs) as response:
                response.raise_for_status()
                return await response.json(content_type=None)

    async def check_eligibility(self, token: str) -> bool:
        url = f"{self.settings.faucet_api}/faucet/multi-eligibility"
        data = await self._request("GET", url, params={"address": self.address, "tokens": token})
        eligible = bool(data.get("results", {}).get(token, {}).get("eligible"))
        if not eligible:
            self.log.warning(f"Token not eligible to faucet: {data}")
        return eligible

    async def request_tokens(self, token: str, turnstile_token: str) -> List[Dict[str, Any]]:
        url = f"{self.settings.faucet_api}/faucet/multi-request"
        payload = {"address": self.address, "turnstileToken": turnstile_token, "tokens": [token]}
        data = await self._request("POST", url, json=payload)
        return data.get("results") or []

    async def solve_captcha(self) -> Optional[str]:
        page_url = self.settings.captcha_url or self.settings.faucet_page
        return await self.captcha_solver.solve_turnstile(self.settings.website_key, page_url)

    async def claim(self, token: str) -> List[ActionResult]:
        action = f"faucet_{token.lower()}"
        try:
            self.log.info(f"Checking available faucet {token}...")
            if not await self.check_eligibility(token):
                return [ActionResult(action, SKIPPED, message="Not eligible")]

            self.log.info("Captcha solving[1/1]...")
            captcha_token = await self.solve_captcha()
            if not captcha_token:
                self.log.error("Failed to solve captcha")
                return [ActionResult(action, FAILED, message=CAPTCHA_NOT_SOLVED)]

            claims = await self.request_tokens(token, captcha_token)
            if not claims:
                self.log.warning("Can't faucet")
                return [ActionResult(action, FAILED, message="Empty faucet response")]

            results = []
            for claim in claims:
                symbol = claim.get("tokenSymbol") or token
                if claim.get("success"):
                    amount = float(claim.get("amount") or 0)
                    self.log.success(f"Faucet {amount:.4f} {symbol} success | Tx: {claim.get('tx')}")
                    results.append(ActionResult(f"faucet_{symbol.lower()}", SUCCESS,
                                                message=f"{amount} {symbol}", tx_hash=claim.get("tx"), attempts=1))
                else:
                    message = claim.get("message") or "Unknown"
                    self.log.warning(f"Faucet {symbol} failed | Message: {message}")
                    results.append(ActionResult(f"faucet_{symbol.lower()}", FAILED, message=message, attempts=1))
            return results
        except Exception as e:
            self.log.error(f"Error in faucet {token}: {str(e)}")
            return [ActionResult(action, FAILED, message=str(e))]

    async def claim_all(self) -> List[ActionResult]:
        results: List[ActionResult] = []
        for token in self.settings.tokens_faucet:
            delay = get_random_delay(self.settings.delay_between_requests)
            self.log.info(f"Starting faucet {token} | Delay {delay}s...")
            await asyncio.sleep(delay)

            token_results = await self.claim(token)
            results.extend(token_results)
            if any(result.message == CAPTCHA_NOT_SOLVED for result in token_results):
                break
        return results
