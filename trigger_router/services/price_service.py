"""Market price lookup via the Jupiter Price API (v2)."""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import requests

from trigger_router.utils.constants import SOL_MINT, USDC_MINT

logger = logging.getLogger(__name__)


class PriceLookupError(RuntimeError):
    pass


@dataclass(frozen=True)
class PriceQuote:
    mint: str
    price: Decimal
    vs_token: str | None = None
    confidence_level: str | None = None
    quoted_buy_price: Decimal | None = None
    quoted_sell_price: Decimal | None = None
    liquidity: str = "medium"

    @property
    def spread_pct(self) -> Decimal | None:
        if self.quoted_buy_price is None or self.quoted_sell_price is None or not self.price:
            return None
        return (self.quoted_sell_price - self.quoted_buy_price) / self.price * 100


def _decimal_or_none(value) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def assess_liquidity(extra_info: dict | None) -> str:
    """Bucket average price impact across quoted depths into high/medium/low."""
    depth = (extra_info or {}).get("depth")
    if not depth:
        return "medium"

    impacts = []
    for side in ("buyPriceImpactRatio", "sellPriceImpactRatio"):
        ratios = (depth.get(side) or {}).get("depth") or {}
        impacts.extend(float(v) for v in ratios.values())
    if not impacts:
        return "medium"

    avg_impact = sum(impacts) / len(impacts)
    if avg_impact < 0.1:
        return "high"
    if avg_impact > 0.3:
        return "low"
    return "medium"


def _parse_price(mint: str, data: dict, vs_token: str | None) -> PriceQuote | None:
    price = _decimal_or_none(data.get("price"))
    if price is None:
        return None

    extra = data.get("extraInfo") or {}
    quoted = extra.get("quotedPrice") or {}
    return PriceQuote(
        mint=mint,
        price=price,
        vs_token=vs_token,
        confidence_level=extra.get("confidenceLevel"),
        quoted_buy_price=_decimal_or_none(quoted.get("buyPrice")),
        quoted_sell_price=_decimal_or_none(quoted.get("sellPrice")),
        liquidity=assess_liquidity(extra),
    )


class PriceService:
    def __init__(self, base_url: str, timeout: float = 15.0):
        self.base_url = base_url
        self.timeout = timeout

    def _fetch(self, params: dict) -> dict:
        logger.debug(f"Fetching prices: {params}")
        try:
            resp = requests.get(self.base_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise PriceLookupError(f"Jupiter Price API unreachable: {e}") from e
        if not resp.ok:
            raise PriceLookupError(f"Jupiter Price API error: {resp.status_code} {resp.reason}")
        try:
            return resp.json().get("data") or {}
        except ValueError as e:
            raise PriceLookupError(f"Jupiter Price API returned invalid JSON: {e}") from e

    async def get_prices(
        self,
        mints: list[str],
        vs_token: str | None = None,
        extra_info: bool = False,
    ) -> dict[str, PriceQuote]:
        """Fetch prices for several mints; unknown mints are omitted."""
        params = {"ids": ",".join(mints)}
        if vs_token:
            params["vsToken"] = vs_token
        if extra_info:
            params["showExtraInfo"] = "true"

        data = await asyncio.get_running_loop().run_in_executor(None, self._fetch, params)

        quotes = {}
        for mint in mints:
            entry = data.get(mint)
            if not entry:
                continue
            quote = _parse_price(mint, entry, vs_token)
            if quote is not None:
                quotes[mint] = quote
        return quotes

    async def get_price(
        self,
        mint: str,
        vs_token: str | None = None,
        extra_info: bool = False,
    ) -> PriceQuote | None:
        quotes = await self.get_prices([mint], vs_token=vs_token, extra_info=extra_info)
        return quotes.get(mint)

    async def get_sol_price(self) -> Decimal:
        """SOL price in USDC."""
        quote = await self.get_price(SOL_MINT, vs_token=USDC_MINT)
        if quote is None:
            raise PriceLookupError("Failed to fetch SOL price")
        return quote.price
