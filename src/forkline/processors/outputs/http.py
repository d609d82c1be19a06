# src/forkline/processors/outputs/http.py
"""HTTP output: send records as JSON array batches."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from forkline.contracts.args import ArgDescriptor
from forkline.contracts.errors import PipelineConfigError
from forkline.engine.streams import StreamFork
from forkline.processors.base import BaseOutputProcessor


@dataclass(frozen=True)
class HttpSendSummary:
    requests: int
    records: int


class HttpOutput(BaseOutputProcessor):
    """POST (or PUT) records to settings['url'] in batches.

    Every request body is a JSON array of up to batch_size records. A non-2xx
    response raises httpx.HTTPStatusError and fails the branch; no retries.

    Config options:
        url: Target URL (required)
        method: POST or PUT (default: POST)
        batch_size: Records per request (default: 100)
        headers: Extra request headers
        timeout: Request timeout in seconds (default: 30)
        transport: httpx transport to send through (tests, proxies)
    """

    name = "http"
    shorthand_arg = "url"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "url": ArgDescriptor(name="url", required=True, description="Target URL"),
            "method": ArgDescriptor(
                name="method",
                default_value="POST",
                valid_values=frozenset({"POST", "PUT"}),
                description="HTTP method",
            ),
            "batch_size": ArgDescriptor(name="batch_size", default_value=100, description="Records per request"),
            "headers": ArgDescriptor(name="headers", description="Extra request headers"),
            "timeout": ArgDescriptor(name="timeout", default_value=30.0, description="Timeout in seconds"),
            "transport": ArgDescriptor(name="transport", description="httpx.AsyncBaseTransport to use"),
        }

    def __init__(self, root: Any, params: Any, args: Any = None) -> None:
        super().__init__(root, params, args)
        try:
            self._batch_size = int(self.params["batch_size"])
            self._timeout = float(self.params["timeout"])
        except (TypeError, ValueError) as exc:
            raise PipelineConfigError(f"{self.name}: batch_size and timeout must be numbers") from exc
        if self._batch_size < 1:
            raise PipelineConfigError(f"{self.name}: batch_size must be >= 1, got {self._batch_size}")
        headers = self.params["headers"] or {}
        if not isinstance(headers, Mapping):
            raise PipelineConfigError(f"{self.name}: headers must be a mapping")
        self._headers = {"Content-Type": "application/json", **headers}

    async def consume(self, key: str, stream: StreamFork) -> HttpSendSummary:
        requests = 0
        records = 0
        batch: list[Any] = []
        async with httpx.AsyncClient(timeout=self._timeout, transport=self.params["transport"]) as client:
            async for record in stream:
                batch.append(record)
                if len(batch) >= self._batch_size:
                    await self._send(client, key, batch)
                    requests += 1
                    records += len(batch)
                    batch = []
            if batch:
                await self._send(client, key, batch)
                requests += 1
                records += len(batch)
        return HttpSendSummary(requests=requests, records=records)

    async def _send(self, client: httpx.AsyncClient, key: str, batch: list[Any]) -> None:
        response = await client.request(
            self.params["method"],
            self.params["url"],
            content=json.dumps(batch, ensure_ascii=False, default=str).encode("utf-8"),
            headers=self._headers,
        )
        response.raise_for_status()
        self._logger.debug("http_batch_sent", branch=key, records=len(batch), status=response.status_code)
