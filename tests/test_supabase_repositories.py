"""
Tests for the Supabase-backed stores and build_repository.

PostgREST is never contacted: requests.request is patched (REST store) or a
MagicMock stands in for the supabase-py client, and the tests check the query
each store operation sends and how rows are mapped back.
"""
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from scamcheck.config import load_settings
from scamcheck.infra.repositories import (
    InMemoryRepository,
    RepositoryError,
    SupabaseRESTRepository,
    SupabaseRepository,
    build_repository,
)

BASE_URL = "https://abcd1234.supabase.co"

REPORT_ROW = {
    "id": "r-1",
    "phone_number": "5551234567",
    "category": "robocalls",
    "description": "Recorded voice asking for SSN",
    "call_type": None,
    "frequency": "daily",
    "is_verified": False,
    "report_count": 1,
    "created_at": "2024-03-01T10:00:00+00:00",
    "updated_at": "2024-03-01T10:00:00Z",
}


def _response(status=200, json_data=None, headers=None):
    res = MagicMock()
    res.status_code = status
    res.json.return_value = [] if json_data is None else json_data
    res.text = ""
    res.headers = headers or {}
    return res


@pytest.fixture
def rest_repo():
    return SupabaseRESTRepository(base_url=BASE_URL + "/", service_key="secret")


class TestReads:
    def test_find_by_phone_number(self, rest_repo):
        with patch("scamcheck.infra.repositories.requests.request", return_value=_response(json_data=[REPORT_ROW])) as req:
            report = rest_repo.find_by_phone_number("5551234567")

        method, url = req.call_args.args
        assert method == "GET"
        assert url == f"{BASE_URL}/rest/v1/scam_reports"
        assert req.call_args.kwargs["params"]["phone_number"] == "eq.5551234567"
        assert req.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"
        assert report.id == "r-1"
        assert report.frequency == "daily"
        assert report.updated_at == report.created_at

    def test_find_missing(self, rest_repo):
        with patch("scamcheck.infra.repositories.requests.request", return_value=_response(json_data=[])):
            assert rest_repo.find_by_phone_number("5550000000") is None

    def test_list_recent_orders_and_limits(self, rest_repo):
        with patch("scamcheck.infra.repositories.requests.request", return_value=_response(json_data=[REPORT_ROW])) as req:
            reports = rest_repo.list_recent(3)
        params = req.call_args.kwargs["params"]
        assert params["order"] == "created_at.desc"
        assert params["limit"] == 3
        assert len(reports) == 1

    def test_count_total_from_content_range(self, rest_repo):
        with patch(
            "scamcheck.infra.repositories.requests.request",
            return_value=_response(headers={"Content-Range": "0-0/42"}),
        ) as req:
            assert rest_repo.count_total() == 42
        assert req.call_args.args[0] == "HEAD"
        assert req.call_args.kwargs["headers"]["Prefer"] == "count=exact"

    def test_count_today_filters_on_created_at(self, rest_repo):
        with patch(
            "scamcheck.infra.repositories.requests.request",
            return_value=_response(headers={"Content-Range": "*/7"}),
        ) as req:
            assert rest_repo.count_today() == 7
        assert req.call_args.kwargs["params"]["created_at"].startswith("gte.")

    def test_community_size_uses_total(self, rest_repo):
        with patch(
            "scamcheck.infra.repositories.requests.request",
            return_value=_response(headers={"Content-Range": "0-9/100"}),
        ):
            assert rest_repo.estimate_community_size() == 1030


class TestWrites:
    def test_increment_patches_existing(self, rest_repo):
        bumped = {**REPORT_ROW, "report_count": 2, "updated_at": "2024-03-02T10:00:00+00:00"}
        responses = [_response(json_data=[REPORT_ROW]), _response(json_data=[bumped])]
        with patch("scamcheck.infra.repositories.requests.request", side_effect=responses) as req:
            report = rest_repo.increment_count("5551234567")

        patch_call = req.call_args_list[1]
        assert patch_call.args[0] == "PATCH"
        assert patch_call.kwargs["params"] == {"id": "eq.r-1"}
        assert patch_call.kwargs["json"]["report_count"] == 2
        assert report.report_count == 2

    def test_increment_missing(self, rest_repo):
        with patch("scamcheck.infra.repositories.requests.request", return_value=_response(json_data=[])) as req:
            assert rest_repo.increment_count("5550000000") is None
        assert req.call_count == 1

    def test_create_report_posts_snake_case_row(self, rest_repo):
        with patch("scamcheck.infra.repositories.requests.request", return_value=_response(json_data=[REPORT_ROW])) as req:
            rest_repo.create_report(phone_number="5551234567", category="robocalls", description="Recorded voice asking for SSN")
        body = req.call_args.kwargs["json"]
        assert body["phone_number"] == "5551234567"
        assert body["report_count"] == 1
        assert body["is_verified"] is False

    def test_create_dispute(self, rest_repo):
        row = {
            "id": "d-1",
            "scam_report_id": "r-1",
            "description": "It is my bank's real number",
            "verification_info": None,
            "created_at": "2024-03-01T11:00:00+00:00",
        }
        with patch("scamcheck.infra.repositories.requests.request", return_value=_response(json_data=[row])) as req:
            dispute = rest_repo.create_dispute(scam_report_id="r-1", description="It is my bank's real number")
        assert req.call_args.args[1].endswith("/rest/v1/disputes")
        assert dispute.id == "d-1"

    def test_http_error_raises(self, rest_repo):
        with patch("scamcheck.infra.repositories.requests.request", return_value=_response(status=503)):
            with pytest.raises(RepositoryError):
                rest_repo.list_reports()


class TestBuildRepository:
    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "memory")
        repo, persistent, note = build_repository(load_settings())
        assert isinstance(repo, InMemoryRepository)
        assert persistent is False
        assert note is None

    def test_supabase_without_credentials_falls_back(self):
        settings = replace(load_settings(), store_backend="supabase", supabase_url="", supabase_key="")
        repo, persistent, note = build_repository(settings)
        assert isinstance(repo, InMemoryRepository)
        assert persistent is False
        assert "in-memory" in note

    def test_supabase_rest_fallback(self):
        settings = replace(load_settings(), store_backend="supabase", supabase_url=BASE_URL, supabase_key="secret")
        with patch("scamcheck.infra.repositories.get_supabase_client", return_value=(None, "no client")), patch(
            "scamcheck.infra.repositories.requests.request", return_value=_response(json_data=[])
        ):
            repo, persistent, note = build_repository(settings)
        assert isinstance(repo, SupabaseRESTRepository)
        assert persistent is True
        assert note is None

    def test_unreachable_rest_falls_back(self):
        settings = replace(load_settings(), store_backend="supabase", supabase_url=BASE_URL, supabase_key="secret")
        with patch("scamcheck.infra.repositories.get_supabase_client", return_value=(None, "no client")), patch(
            "scamcheck.infra.repositories.requests.request", return_value=_response(status=404)
        ):
            repo, persistent, note = build_repository(settings)
        assert isinstance(repo, InMemoryRepository)
        assert "REST unavailable" in note


class TestSupabaseClientRepository:
    def test_find_by_phone_number(self):
        client = MagicMock()
        table = client.table.return_value
        table.select.return_value.eq.return_value.limit.return_value.execute.return_value = MagicMock(data=[REPORT_ROW])

        report = SupabaseRepository(client).find_by_phone_number("5551234567")

        client.table.assert_called_with("scam_reports")
        table.select.return_value.eq.assert_called_with("phone_number", "5551234567")
        assert report.phone_number == "5551234567"

    def test_count_total(self):
        client = MagicMock()
        table = client.table.return_value
        table.select.return_value.limit.return_value.execute.return_value = MagicMock(count=12)

        assert SupabaseRepository(client).count_total() == 12
        table.select.assert_called_with("id", count="exact")

    def test_insert_failure_wrapped(self):
        client = MagicMock()
        client.table.return_value.insert.return_value.execute.side_effect = Exception("duplicate key value")

        with pytest.raises(RepositoryError):
            SupabaseRepository(client).create_report(
                phone_number="5551234567",
                category="robocalls",
                description="Recorded voice asking for SSN",
            )

    def test_set_verified_unknown(self):
        client = MagicMock()
        table = client.table.return_value
        table.select.return_value.eq.return_value.limit.return_value.execute.return_value = MagicMock(data=[])

        assert SupabaseRepository(client).set_verified("missing", True) is None
        table.update.assert_not_called()

    def test_read_failures_wrapped(self):
        client = MagicMock()
        table = client.table.return_value
        table.select.return_value.eq.return_value.limit.return_value.execute.side_effect = Exception("connection reset")
        table.select.return_value.order.return_value.execute.side_effect = Exception("connection reset")
        table.select.return_value.limit.return_value.execute.side_effect = Exception("connection reset")
        repo = SupabaseRepository(client)

        with pytest.raises(RepositoryError, match="Report lookup by phone_number failed"):
            repo.find_by_phone_number("5551234567")
        with pytest.raises(RepositoryError, match="Report listing failed"):
            repo.list_reports()
        with pytest.raises(RepositoryError, match="Report count failed"):
            repo.count_total()

    def test_read_failure_reaches_api_as_store_error(self):
        from fastapi.testclient import TestClient

        from scamcheck.api.main import create_app
        from scamcheck.services.report_service import ReportService

        client = MagicMock()
        client.table.return_value.select.return_value.limit.return_value.execute.side_effect = Exception("timeout")
        app = create_app(ReportService(SupabaseRepository(client), persistent=True))

        res = TestClient(app).get("/api/stats")

        assert res.status_code == 500
        assert res.json() == {"message": "Store operation failed"}
