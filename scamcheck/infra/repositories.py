from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import math
from threading import RLock
from typing import Any, Callable

import requests

from scamcheck.config import Settings
from scamcheck.domain.models import (
    Dispute,
    ScamReport,
    local_midnight,
    next_timestamp,
    utc_now,
)
from scamcheck.infra.supabase_client import get_supabase_client


REPORTS_TABLE = "scam_reports"
DISPUTES_TABLE = "disputes"

COMMUNITY_SIZE_FACTOR = 0.3
COMMUNITY_SIZE_BASELINE = 1000


class RepositoryError(RuntimeError):
    pass


class ReportRepository:
    """Report store keyed by canonical phone number, plus the dispute store.

    Phone numbers passed in are expected to be normalized already. ``create_report``
    does not check uniqueness; the caller decides between create and increment.
    """

    def find_by_phone_number(self, phone_number: str) -> ScamReport | None:
        raise NotImplementedError

    def create_report(
        self,
        *,
        phone_number: str,
        category: str,
        description: str,
        call_type: str | None = None,
        frequency: str | None = None,
    ) -> ScamReport:
        raise NotImplementedError

    def increment_count(self, phone_number: str) -> ScamReport | None:
        raise NotImplementedError

    def set_verified(self, report_id: str, is_verified: bool) -> ScamReport | None:
        raise NotImplementedError

    def list_reports(self) -> list[ScamReport]:
        raise NotImplementedError

    def list_recent(self, limit: int = 10) -> list[ScamReport]:
        return self.list_reports()[: max(0, limit)]

    def count_total(self) -> int:
        raise NotImplementedError

    def count_today(self) -> int:
        raise NotImplementedError

    def estimate_community_size(self) -> int:
        # Placeholder heuristic, not a count of distinct reporters.
        return math.floor(self.count_total() * COMMUNITY_SIZE_FACTOR) + COMMUNITY_SIZE_BASELINE

    def create_dispute(
        self,
        *,
        scam_report_id: str,
        description: str,
        verification_info: str | None = None,
    ) -> Dispute:
        raise NotImplementedError

    def list_disputes(self, scam_report_id: str) -> list[Dispute]:
        raise NotImplementedError


class InMemoryRepository(ReportRepository):
    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._lock = RLock()
        self._clock = clock
        self._reports: dict[str, ScamReport] = {}
        self._phone_index: dict[str, str] = {}
        self._disputes: dict[str, Dispute] = {}

    def find_by_phone_number(self, phone_number: str) -> ScamReport | None:
        with self._lock:
            report_id = self._phone_index.get(phone_number)
            if report_id is None:
                return None
            return self._reports.get(report_id)

    def create_report(
        self,
        *,
        phone_number: str,
        category: str,
        description: str,
        call_type: str | None = None,
        frequency: str | None = None,
    ) -> ScamReport:
        with self._lock:
            now = self._clock()
            report = ScamReport(
                phone_number=phone_number,
                category=category,
                description=description,
                call_type=call_type or None,
                frequency=frequency or None,
                created_at=now,
                updated_at=now,
            )
            self._reports[report.id] = report
            self._phone_index[phone_number] = report.id
            return report

    def increment_count(self, phone_number: str) -> ScamReport | None:
        with self._lock:
            report_id = self._phone_index.get(phone_number)
            existing = self._reports.get(report_id) if report_id else None
            if existing is None:
                return None
            updated = replace(
                existing,
                report_count=(existing.report_count or 1) + 1,
                updated_at=next_timestamp(self._clock(), existing.updated_at),
            )
            self._reports[existing.id] = updated
            return updated

    def set_verified(self, report_id: str, is_verified: bool) -> ScamReport | None:
        with self._lock:
            existing = self._reports.get(report_id)
            if existing is None:
                return None
            updated = replace(
                existing,
                is_verified=is_verified,
                updated_at=next_timestamp(self._clock(), existing.updated_at),
            )
            self._reports[report_id] = updated
            return updated

    def list_reports(self) -> list[ScamReport]:
        with self._lock:
            # sorted() is stable, so equal timestamps keep insertion order.
            return sorted(self._reports.values(), key=lambda r: r.created_at, reverse=True)

    def count_total(self) -> int:
        with self._lock:
            return len(self._reports)

    def count_today(self) -> int:
        with self._lock:
            midnight = local_midnight(self._clock())
            return sum(1 for r in self._reports.values() if r.created_at >= midnight)

    def create_dispute(
        self,
        *,
        scam_report_id: str,
        description: str,
        verification_info: str | None = None,
    ) -> Dispute:
        with self._lock:
            dispute = Dispute(
                scam_report_id=scam_report_id,
                description=description,
                verification_info=verification_info or None,
                created_at=self._clock(),
            )
            self._disputes[dispute.id] = dispute
            return dispute

    def list_disputes(self, scam_report_id: str) -> list[Dispute]:
        with self._lock:
            return [d for d in self._disputes.values() if d.scam_report_id == scam_report_id]


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _row_to_report(row: dict[str, Any]) -> ScamReport:
    return ScamReport(
        id=str(row["id"]),
        phone_number=str(row["phone_number"]),
        category=str(row["category"]),
        description=str(row["description"]),
        call_type=row.get("call_type"),
        frequency=row.get("frequency"),
        is_verified=bool(row.get("is_verified") or False),
        report_count=int(row.get("report_count") or 1),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row.get("updated_at") or row["created_at"]),
    )


def _row_to_dispute(row: dict[str, Any]) -> Dispute:
    return Dispute(
        id=str(row["id"]),
        scam_report_id=str(row["scam_report_id"]),
        description=str(row["description"]),
        verification_info=row.get("verification_info"),
        created_at=_parse_ts(row["created_at"]),
    )


def _report_row(report: ScamReport) -> dict[str, Any]:
    return {
        "id": report.id,
        "phone_number": report.phone_number,
        "category": report.category,
        "description": report.description,
        "call_type": report.call_type,
        "frequency": report.frequency,
        "is_verified": report.is_verified,
        "report_count": report.report_count,
        "created_at": report.created_at.isoformat(),
        "updated_at": report.updated_at.isoformat(),
    }


def _dispute_row(dispute: Dispute) -> dict[str, Any]:
    return {
        "id": dispute.id,
        "scam_report_id": dispute.scam_report_id,
        "description": dispute.description,
        "verification_info": dispute.verification_info,
        "created_at": dispute.created_at.isoformat(),
    }


class SupabaseRepository(ReportRepository):
    def __init__(self, client: Any) -> None:
        self.client = client

    @staticmethod
    def _execute(query: Any, what: str) -> Any:
        try:
            return query.execute()
        except Exception as exc:
            raise RepositoryError(f"{what} failed: {exc}") from exc

    def _insert_one(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        res = self._execute(self.client.table(table).insert(row), f"Insert into {table}")
        if not res.data:
            raise RepositoryError(f"Insert failed for {table}")
        return dict(res.data[0])

    def _update_report(self, report_id: str, updates: dict[str, Any]) -> ScamReport | None:
        res = self._execute(
            self.client.table(REPORTS_TABLE).update(updates).eq("id", report_id),
            f"Update of report {report_id}",
        )
        if not res.data:
            return None
        return _row_to_report(dict(res.data[0]))

    def _get_report(self, column: str, value: str) -> ScamReport | None:
        res = self._execute(
            self.client.table(REPORTS_TABLE).select("*").eq(column, value).limit(1),
            f"Report lookup by {column}",
        )
        if not res.data:
            return None
        return _row_to_report(dict(res.data[0]))

    def find_by_phone_number(self, phone_number: str) -> ScamReport | None:
        return self._get_report("phone_number", phone_number)

    def create_report(
        self,
        *,
        phone_number: str,
        category: str,
        description: str,
        call_type: str | None = None,
        frequency: str | None = None,
    ) -> ScamReport:
        now = utc_now()
        report = ScamReport(
            phone_number=phone_number,
            category=category,
            description=description,
            call_type=call_type or None,
            frequency=frequency or None,
            created_at=now,
            updated_at=now,
        )
        return _row_to_report(self._insert_one(REPORTS_TABLE, _report_row(report)))

    def increment_count(self, phone_number: str) -> ScamReport | None:
        existing = self.find_by_phone_number(phone_number)
        if existing is None:
            return None
        return self._update_report(
            existing.id,
            {
                "report_count": existing.report_count + 1,
                "updated_at": next_timestamp(utc_now(), existing.updated_at).isoformat(),
            },
        )

    def set_verified(self, report_id: str, is_verified: bool) -> ScamReport | None:
        existing = self._get_report("id", report_id)
        if existing is None:
            return None
        return self._update_report(
            report_id,
            {
                "is_verified": is_verified,
                "updated_at": next_timestamp(utc_now(), existing.updated_at).isoformat(),
            },
        )

    def list_reports(self) -> list[ScamReport]:
        res = self._execute(
            self.client.table(REPORTS_TABLE).select("*").order("created_at", desc=True),
            "Report listing",
        )
        return [_row_to_report(dict(r)) for r in (res.data or [])]

    def list_recent(self, limit: int = 10) -> list[ScamReport]:
        if limit <= 0:
            return []
        res = self._execute(
            self.client.table(REPORTS_TABLE).select("*").order("created_at", desc=True).limit(limit),
            "Recent report listing",
        )
        return [_row_to_report(dict(r)) for r in (res.data or [])]

    def count_total(self) -> int:
        res = self._execute(
            self.client.table(REPORTS_TABLE).select("id", count="exact").limit(1),
            "Report count",
        )
        return int(res.count or 0)

    def count_today(self) -> int:
        midnight = local_midnight(utc_now()).isoformat()
        res = self._execute(
            self.client.table(REPORTS_TABLE).select("id", count="exact").gte("created_at", midnight).limit(1),
            "Today's report count",
        )
        return int(res.count or 0)

    def create_dispute(
        self,
        *,
        scam_report_id: str,
        description: str,
        verification_info: str | None = None,
    ) -> Dispute:
        dispute = Dispute(
            scam_report_id=scam_report_id,
            description=description,
            verification_info=verification_info or None,
        )
        return _row_to_dispute(self._insert_one(DISPUTES_TABLE, _dispute_row(dispute)))

    def list_disputes(self, scam_report_id: str) -> list[Dispute]:
        res = self._execute(
            self.client.table(DISPUTES_TABLE).select("*").eq("scam_report_id", scam_report_id).order("created_at"),
            "Dispute listing",
        )
        return [_row_to_dispute(dict(r)) for r in (res.data or [])]


class SupabaseRESTRepository(ReportRepository):
    def __init__(self, *, base_url: str, service_key: str) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key

    def _headers(self, prefer: str = "return=representation") -> dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
            "Prefer": prefer,
        }

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
        prefer: str = "return=representation",
    ) -> requests.Response:
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            res = requests.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(prefer),
                timeout=20,
            )
        except requests.RequestException as exc:
            raise RepositoryError(f"Supabase REST request failed: {exc}") from exc
        if res.status_code >= 400:
            raise RepositoryError(f"Supabase REST error [{res.status_code}] {res.text[:300]}")
        return res

    def _rest(self, method: str, table: str, **kwargs: Any) -> list[dict[str, Any]]:
        res = self._request(method, table, **kwargs)
        try:
            data = res.json()
        except ValueError:
            data = []
        if isinstance(data, list):
            return [dict(r) for r in data]
        if isinstance(data, dict):
            return [data]
        return []

    def _count(self, params: dict[str, Any]) -> int:
        res = self._request(
            "HEAD",
            REPORTS_TABLE,
            params={"select": "id", **params},
            prefer="count=exact",
        )
        # Content-Range looks like "0-24/3573" or "*/0".
        content_range = res.headers.get("Content-Range", "")
        total = content_range.rsplit("/", 1)[-1]
        return int(total) if total.isdigit() else 0

    def _get_report(self, column: str, value: str) -> ScamReport | None:
        out = self._rest(
            "GET",
            REPORTS_TABLE,
            params={"select": "*", column: f"eq.{value}", "limit": 1},
        )
        return _row_to_report(out[0]) if out else None

    def _patch_report(self, report_id: str, updates: dict[str, Any]) -> ScamReport | None:
        out = self._rest("PATCH", REPORTS_TABLE, params={"id": f"eq.{report_id}"}, payload=updates)
        return _row_to_report(out[0]) if out else None

    def find_by_phone_number(self, phone_number: str) -> ScamReport | None:
        return self._get_report("phone_number", phone_number)

    def create_report(
        self,
        *,
        phone_number: str,
        category: str,
        description: str,
        call_type: str | None = None,
        frequency: str | None = None,
    ) -> ScamReport:
        now = utc_now()
        report = ScamReport(
            phone_number=phone_number,
            category=category,
            description=description,
            call_type=call_type or None,
            frequency=frequency or None,
            created_at=now,
            updated_at=now,
        )
        out = self._rest("POST", REPORTS_TABLE, payload=_report_row(report))
        if not out:
            raise RepositoryError(f"Insert failed for {REPORTS_TABLE}")
        return _row_to_report(out[0])

    def increment_count(self, phone_number: str) -> ScamReport | None:
        existing = self.find_by_phone_number(phone_number)
        if existing is None:
            return None
        return self._patch_report(
            existing.id,
            {
                "report_count": existing.report_count + 1,
                "updated_at": next_timestamp(utc_now(), existing.updated_at).isoformat(),
            },
        )

    def set_verified(self, report_id: str, is_verified: bool) -> ScamReport | None:
        existing = self._get_report("id", report_id)
        if existing is None:
            return None
        return self._patch_report(
            report_id,
            {
                "is_verified": is_verified,
                "updated_at": next_timestamp(utc_now(), existing.updated_at).isoformat(),
            },
        )

    def list_reports(self) -> list[ScamReport]:
        out = self._rest("GET", REPORTS_TABLE, params={"select": "*", "order": "created_at.desc"})
        return [_row_to_report(r) for r in out]

    def list_recent(self, limit: int = 10) -> list[ScamReport]:
        if limit <= 0:
            return []
        out = self._rest(
            "GET",
            REPORTS_TABLE,
            params={"select": "*", "order": "created_at.desc", "limit": limit},
        )
        return [_row_to_report(r) for r in out]

    def count_total(self) -> int:
        return self._count({})

    def count_today(self) -> int:
        midnight = local_midnight(utc_now()).isoformat()
        return self._count({"created_at": f"gte.{midnight}"})

    def create_dispute(
        self,
        *,
        scam_report_id: str,
        description: str,
        verification_info: str | None = None,
    ) -> Dispute:
        dispute = Dispute(
            scam_report_id=scam_report_id,
            description=description,
            verification_info=verification_info or None,
        )
        out = self._rest("POST", DISPUTES_TABLE, payload=_dispute_row(dispute))
        if not out:
            raise RepositoryError(f"Insert failed for {DISPUTES_TABLE}")
        return _row_to_dispute(out[0])

    def list_disputes(self, scam_report_id: str) -> list[Dispute]:
        out = self._rest(
            "GET",
            DISPUTES_TABLE,
            params={
                "select": "*",
                "scam_report_id": f"eq.{scam_report_id}",
                "order": "created_at.asc",
            },
        )
        return [_row_to_dispute(r) for r in out]


def build_repository(settings: Settings) -> tuple[ReportRepository, bool, str | None]:
    if settings.store_backend != "supabase":
        return InMemoryRepository(), False, None

    client, client_err = get_supabase_client(settings)
    if client is not None:
        try:
            # Connectivity + schema check.
            client.table(REPORTS_TABLE).select("id").limit(1).execute()
            return SupabaseRepository(client), True, None
        except Exception as exc:
            return (
                InMemoryRepository(),
                False,
                "Supabase unavailable or schema mismatch "
                f"({exc}). Run `sql/schema.sql` and restart. Using in-memory repository.",
            )

    # Fallback path when supabase-py isn't usable: talk to PostgREST directly.
    if settings.supabase_url_valid() and settings.supabase_key_present():
        try:
            repo = SupabaseRESTRepository(base_url=settings.supabase_url, service_key=settings.supabase_key)
            repo._rest("GET", REPORTS_TABLE, params={"select": "id", "limit": 1})
            return repo, True, None
        except RepositoryError as exc:
            return (
                InMemoryRepository(),
                False,
                "Supabase REST unavailable or schema mismatch "
                f"({exc}). Run `sql/schema.sql` and restart. Using in-memory repository.",
            )

    return InMemoryRepository(), False, f"{client_err or 'Supabase client unavailable'}; using in-memory repository."
