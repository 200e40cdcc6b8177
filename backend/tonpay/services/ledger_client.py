"""
Ledger Query Client

Fetches recent inbound transactions for the recipient wallet from
tonapi.io. Any transport, HTTP or payload problem raises LedgerQueryError;
partial data is never returned.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote

import aiohttp

from ..exceptions import LedgerQueryError
from ..models.transactions import TransactionRecord

logger = logging.getLogger(__name__)


class LedgerQueryClient(Protocol):
    """Source of recent inbound transactions, most recent first."""

    async def get_account_transactions(
        self,
        address: str,
        limit: int
    ) -> List[TransactionRecord]:
        ...


class TonApiClient:
    """
    tonapi.io v2 client.

    Uses one lazily created aiohttp session; call close() on shutdown.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 25,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session

    async def _get_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _call(
        self,
        method_path: str,
        params: Optional[Dict[str, Any]] = None,
        path_params: Optional[Dict[str, str]] = None
    ) -> Any:
        """GET a tonapi method and return the decoded JSON body."""
        method_path = method_path.lstrip("/")
        for key, value in (path_params or {}).items():
            method_path = method_path.replace("{" + key + "}", quote(value, safe=""))
        url = f"{self.base_url}/{method_path}"

        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

        session = await self._get_session()
        try:
            async with session.get(
                url, params=params, headers=headers, timeout=self._timeout
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise LedgerQueryError(
                        f"tonapi returned HTTP {resp.status}",
                        details={"url": url, "status": resp.status}
                    )
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise LedgerQueryError(
                        "tonapi returned malformed JSON",
                        details={"url": url}
                    ) from e
        except asyncio.TimeoutError as e:
            raise LedgerQueryError(
                f"tonapi request timed out after {self._timeout.total}s",
                details={"url": url}
            ) from e
        except aiohttp.ClientError as e:
            raise LedgerQueryError(
                f"tonapi request failed: {e}",
                details={"url": url}
            ) from e

    async def get_account_transactions(
        self,
        address: str,
        limit: int
    ) -> List[TransactionRecord]:
        """
        Most recent transactions of an account, newest first.

        Raises:
            LedgerQueryError: request failed or payload lacks a transactions list
        """
        data = await self._call(
            "blockchain/accounts/{account_id}/transactions",
            params={"limit": limit},
            path_params={"account_id": address},
        )

        transactions = data.get("transactions") if isinstance(data, dict) else None
        if not isinstance(transactions, list):
            raise LedgerQueryError(
                "tonapi response has no transactions list",
                details={"address": address}
            )
        if not all(isinstance(tx, dict) for tx in transactions):
            raise LedgerQueryError(
                "tonapi response contains malformed transaction entries",
                details={"address": address}
            )

        logger.debug(f"Fetched {len(transactions)} transactions for {address}")
        return [TransactionRecord.from_tonapi(tx) for tx in transactions]
