"""Scripted stand-ins for the upstream REST platform."""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Awaitable, Callable
from typing import Any

from calaim.records.utils import HTTPResponse

_EQUALS = re.compile(r"^(\w+)='((?:[^']|'')*)'$")
_NULL_OR_EMPTY = re.compile(r"^(\w+) IS NULL OR (\w+)=''$")
_GREATER = re.compile(r"^(\w+)>'((?:[^']|'')*)'$")


def json_response(payload: Any, status: int = 200) -> HTTPResponse:
    return HTTPResponse(status=status, text=json.dumps(payload))


def _split_conditions(where: str) -> list[str]:
    if where.startswith("(") and where.endswith(")") and ") AND (" in where:
        return where[1:-1].split(") AND (")
    return [where]


def matches(row: dict[str, Any], where: str) -> bool:
    """Evaluate the small predicate dialect the planner emits."""
    for condition in _split_conditions(where):
        if condition == "1=1":
            continue
        if m := _NULL_OR_EMPTY.match(condition):
            if row.get(m.group(1)) not in (None, ""):
                return False
            continue
        if m := _EQUALS.match(condition):
            if row.get(m.group(1)) != m.group(2).replace("''", "'"):
                return False
            continue
        if m := _GREATER.match(condition):
            value = row.get(m.group(1))
            if value is None or str(value) <= m.group(2):
                return False
            continue
        raise AssertionError(f"unsupported predicate: {condition}")
    return True


class FakeUpstream:
    """In-memory table that answers list, count and group-by queries.

    Attributes:
        rows: Table contents
        failures: ``(where, page_number) -> status or exception``
        delays: ``where -> seconds`` slept before answering
        cap: Hard per-query row cap, like the real platform
    """

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        *,
        failures: dict[tuple[str, int], int | Exception] | None = None,
        delays: dict[str, float] | None = None,
        count_status: int = 200,
        cap: int = 1000,
    ) -> None:
        self.rows = rows or []
        self.failures = failures or {}
        self.delays = delays or {}
        self.count_status = count_status
        self.cap = cap

    async def handle(self, url: str, params: dict[str, Any], headers: dict[str, str]) -> HTTPResponse:
        where = params.get("q.where", "1=1")
        if params.get("q.select") == "COUNT(*)":
            if self.count_status != 200:
                return HTTPResponse(status=self.count_status, text="count failed")
            total = sum(1 for row in self.rows if matches(row, where))
            return json_response({"Result": [{"COUNT(*)": total}]})

        page_number = int(params["q.pageNumber"])
        failure = self.failures.get((where, page_number))
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return HTTPResponse(status=failure, text="upstream error")

        delay = self.delays.get(where)
        if delay:
            await asyncio.sleep(delay)

        selected = [row for row in self.rows if matches(row, where)]
        group_by = params.get("q.groupBy")
        if group_by:
            seen: dict[Any, None] = {}
            for row in selected:
                seen.setdefault(row.get(group_by), None)
            selected = [{group_by: value} for value in seen]

        page_size = min(int(params["q.pageSize"]), self.cap)
        start = (page_number - 1) * page_size
        return json_response({"Result": selected[start : start + page_size]})


Handler = Callable[[str, dict[str, Any], dict[str, str]], Awaitable[HTTPResponse]]


class FakeHTTPClient:
    """Duck-typed HTTPClient recording every request."""

    def __init__(self, upstream: FakeUpstream | None = None, handler: Handler | None = None) -> None:
        self.upstream = upstream or FakeUpstream()
        self.handler = handler
        self.token_responses: list[HTTPResponse | Exception] = []
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = False

    async def post(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> HTTPResponse:
        self.calls.append(("POST", url, {"data": data, "headers": headers or {}}))
        # Let concurrent callers interleave like a real network round-trip
        await asyncio.sleep(0)
        if self.token_responses:
            item = self.token_responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return json_response({"access_token": "token-1", "token_type": "bearer", "expires_in": 86399})

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> HTTPResponse:
        params = params or {}
        headers = headers or {}
        self.calls.append(("GET", url, {"params": params, "headers": headers}))
        if self.handler is not None:
            return await self.handler(url, params, headers)
        return await self.upstream.handle(url, params, headers)

    async def close(self) -> None:
        self.closed = True

    @property
    def token_requests(self) -> list[dict[str, Any]]:
        return [call[2] for call in self.calls if call[0] == "POST"]

    def page_requests(self, where: str | None = None) -> list[dict[str, Any]]:
        """Params of every page request, optionally for one filter."""
        out = []
        for method, _url, info in self.calls:
            params = info["params"] if method == "GET" else {}
            if "q.pageNumber" not in params:
                continue
            if where is None or params.get("q.where") == where:
                out.append(params)
        return out


async def no_sleep(_delay: float) -> None:
    return None


