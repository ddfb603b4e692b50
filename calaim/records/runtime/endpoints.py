"""Upstream REST endpoint paths and query builders."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

TOKEN_PATH = "/oauth/token"
COUNT_SELECT = "COUNT(*)"


def records_path(table: str) -> str:
    return f"/rest/v2/tables/{quote(table, safe='')}/records"


def page_query(
    where: str,
    *,
    page_size: int,
    page_number: int,
    select_fields: Sequence[str] = (),
    group_by: str | None = None,
) -> dict[str, Any]:
    q: dict[str, Any] = {
        "q.where": where,
        "q.pageSize": str(page_size),
        "q.pageNumber": str(page_number),
    }
    if select_fields:
        q["q.select"] = ",".join(select_fields)
    if group_by:
        q["q.groupBy"] = group_by
    return q


def count_query(where: str | None = None) -> dict[str, Any]:
    q: dict[str, Any] = {"q.select": COUNT_SELECT}
    if where:
        q["q.where"] = where
    return q


def token_form() -> dict[str, str]:
    return {"grant_type": "client_credentials"}
