from __future__ import annotations

from dataclasses import dataclass

from scamcheck.infra.repositories import ReportRepository


@dataclass(frozen=True)
class Stats:
    total_scams: int
    today_reports: int
    community_size: int


class StatsService:
    def __init__(self, repo: ReportRepository) -> None:
        self.repo = repo

    def snapshot(self) -> Stats:
        return Stats(
            total_scams=self.repo.count_total(),
            today_reports=self.repo.count_today(),
            community_size=self.repo.estimate_community_size(),
        )

    def describe(self) -> dict[str, int]:
        stats = self.snapshot()
        return {
            "totalScams": stats.total_scams,
            "todayReports": stats.today_reports,
            "communitySize": stats.community_size,
        }
