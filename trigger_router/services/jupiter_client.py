"""Jupiter Trigger API client for limit order creation, cancellation and execution.

Wraps the REST endpoints under ``/trigger/v1``. Every call returns a
``TriggerOrderResult`` instead of raising, so callers can treat each leg of a
trade as independently failable.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)


@dataclass
class LegSubmission:
    """One fully formed order, amounts as exact integer text."""

    input_mint: str
    output_mint: str
    maker: str
    payer: str
    making_amount: str
    taking_amount: str
    expired_at: int | None = None  # unix seconds
    slippage_bps: int | None = None


@dataclass
class TriggerOrderResult:
    success: bool
    order_handle: str | None = None
    transaction: str | None = None  # unsigned, base64
    request_id: str | None = None
    signature: str | None = None
    status: str | None = None
    error: str | None = None
    raw_response: str | None = None


class JupiterTriggerClient:
    """Thin async wrapper over the Jupiter Trigger REST API."""

    def __init__(
        self,
        base_url: str,
        compute_unit_price: str = "auto",
        timeout: float = 15.0,
        mock_mode: bool = False,
    ):
        self.base_url = base_url.rstrip("/")
        self.compute_unit_price = compute_unit_price
        self.timeout = timeout
        self._mock_mode = mock_mode

    def _post(self, path: str, body: dict) -> tuple[int, dict]:
        resp = requests.post(
            f"{self.base_url}/trigger/v1/{path}",
            json=body,
            timeout=self.timeout,
        )
        try:
            payload = resp.json()
        except ValueError:
            payload = {"error": resp.text or resp.reason}
        return resp.status_code, payload

    async def _call(self, path: str, body: dict) -> tuple[int, dict]:
        # requests is blocking; run in executor to keep the event loop free
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._post, path, body)

    @staticmethod
    def _error_message(payload: dict) -> str:
        return str(payload.get("error") or payload.get("message") or payload.get("cause") or "Unknown error")

    async def create_order(self, leg: LegSubmission) -> TriggerOrderResult:
        """Create a trigger order and return its handle plus the unsigned transaction."""
        params: dict[str, str] = {
            "makingAmount": leg.making_amount,
            "takingAmount": leg.taking_amount,
        }
        if leg.expired_at is not None:
            params["expiredAt"] = str(leg.expired_at)
        if leg.slippage_bps is not None:
            params["slippageBps"] = str(leg.slippage_bps)

        body = {
            "inputMint": leg.input_mint,
            "outputMint": leg.output_mint,
            "maker": leg.maker,
            "payer": leg.payer,
            "params": params,
            "computeUnitPrice": self.compute_unit_price,
            "wrapAndUnwrapSol": True,
        }

        if self._mock_mode:
            handle = f"mock-{uuid.uuid4().hex[:16]}"
            logger.info(
                f"MOCK createOrder: {leg.making_amount} {leg.input_mint} -> "
                f"{leg.taking_amount} {leg.output_mint}, maker={leg.maker}"
            )
            return TriggerOrderResult(
                success=True, order_handle=handle, transaction="", request_id=f"mock-req-{handle}"
            )

        logger.debug(f"createOrder request: {body}")
        try:
            status_code, payload = await self._call("createOrder", body)
        except requests.RequestException as e:
            logger.error(f"createOrder failed: {e}")
            return TriggerOrderResult(success=False, error=str(e))

        if status_code >= 400:
            error = self._error_message(payload)
            logger.error(f"createOrder rejected ({status_code}): {error}")
            return TriggerOrderResult(success=False, error=f"Jupiter API error: {error}", raw_response=str(payload))

        handle = payload.get("order") or payload.get("orderAccount")
        logger.info(f"Trigger order created: {handle} (request {payload.get('requestId')})")
        return TriggerOrderResult(
            success=True,
            order_handle=handle,
            transaction=payload.get("transaction") or payload.get("tx"),
            request_id=payload.get("requestId"),
            status=payload.get("status"),
            raw_response=str(payload),
        )

    async def cancel_order(self, maker: str, order_handle: str) -> TriggerOrderResult:
        """Request an unsigned transaction that cancels one order."""
        body = {
            "maker": maker,
            "order": order_handle,
            "computeUnitPrice": self.compute_unit_price,
        }

        if self._mock_mode:
            logger.info(f"MOCK cancelOrder: order={order_handle}, maker={maker}")
            return TriggerOrderResult(
                success=True, order_handle=order_handle, transaction="", request_id=f"mock-cancel-{order_handle}"
            )

        try:
            status_code, payload = await self._call("cancelOrder", body)
        except requests.RequestException as e:
            logger.error(f"cancelOrder failed: {e}")
            return TriggerOrderResult(success=False, order_handle=order_handle, error=str(e))

        if status_code >= 400:
            error = self._error_message(payload)
            logger.error(f"cancelOrder rejected ({status_code}): {error} | order={order_handle}")
            return TriggerOrderResult(
                success=False, order_handle=order_handle, error=f"Jupiter API error: {error}",
                raw_response=str(payload),
            )

        return TriggerOrderResult(
            success=True,
            order_handle=order_handle,
            transaction=payload.get("transaction") or payload.get("tx"),
            request_id=payload.get("requestId"),
            raw_response=str(payload),
        )

    async def execute(self, signed_transaction: str, request_id: str) -> TriggerOrderResult:
        """Submit a user-signed create/cancel transaction."""
        body = {"signedTransaction": signed_transaction, "requestId": request_id}

        if self._mock_mode:
            logger.info(f"MOCK execute: request={request_id}")
            return TriggerOrderResult(
                success=True, request_id=request_id, signature=f"mock-sig-{request_id}", status="Success"
            )

        try:
            status_code, payload = await self._call("execute", body)
        except requests.RequestException as e:
            logger.error(f"execute failed: {e}")
            return TriggerOrderResult(success=False, request_id=request_id, error=str(e))

        status = payload.get("status")
        if status_code >= 400 or status == "Failed":
            error = self._error_message(payload)
            logger.error(f"execute rejected ({status_code}): {error} | request={request_id}")
            return TriggerOrderResult(
                success=False, request_id=request_id, signature=payload.get("signature"),
                status=status, error=f"Jupiter API error: {error}", raw_response=str(payload),
            )

        logger.info(f"Executed request {request_id}: {payload.get('signature')}")
        return TriggerOrderResult(
            success=True,
            request_id=request_id,
            signature=payload.get("signature"),
            status=status,
            raw_response=str(payload),
        )
