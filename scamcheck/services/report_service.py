from __future__ import annotations

from contextlib import contextmanager
import logging
from threading import Lock
from typing import Iterator

from scamcheck.contracts.payloads import DisputeSubmission, ReportSubmission
from scamcheck.domain.models import Dispute, ScamReport
from scamcheck.domain.phone import (
    format_phone_number,
    looks_like_phone_number,
    normalize_phone_number,
)
from scamcheck.infra.repositories import ReportRepository

logger = logging.getLogger(__name__)


class PhoneNumberLocks:
    """One lock per phone number, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, tuple[Lock, int]] = {}

    @contextmanager
    def hold(self, phone_number: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(phone_number, (Lock(), 0))
            self._locks[phone_number] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[phone_number]
                if users <= 1:
                    del self._locks[phone_number]
                else:
                    self._locks[phone_number] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ReportService:
    def __init__(self, repo: ReportRepository, *, persistent: bool = False) -> None:
        self.repo = repo
        self.persistent = persistent
        self._locks = PhoneNumberLocks()

    def lookup(self, raw_phone_number: str) -> ScamReport | None:
        phone_number = normalize_phone_number(raw_phone_number)
        if not phone_number:
            return None
        return self.repo.find_by_phone_number(phone_number)

    def submit_report(self, submission: ReportSubmission) -> tuple[ScamReport, bool]:
        """Create a report, or bump the count of the one already filed for this number.

        Returns ``(report, created)``. Find and create/increment run under the
        number's lock so concurrent first reports cannot produce two records.
        """
        phone_number = normalize_phone_number(submission.phone_number)
        if not phone_number:
            raise ValueError("Phone number must contain digits")

        with self._locks.hold(phone_number):
            existing = self.repo.find_by_phone_number(phone_number)
            if existing is not None:
                updated = self.repo.increment_count(phone_number)
                if updated is None:
                    raise RuntimeError(f"Report vanished during update: {existing.id}")
                logger.info(
                    "Report count for %s raised to %d",
                    format_phone_number(phone_number),
                    updated.report_count,
                )
                return updated, False

            report = self.repo.create_report(
                phone_number=phone_number,
                category=submission.category,
                description=submission.description,
                call_type=submission.call_type,
                frequency=submission.frequency,
            )
        logger.info("New report %s for %s (%s)", report.id, format_phone_number(phone_number), report.category)
        return report, True

    def recent(self, limit: int = 10) -> list[ScamReport]:
        return self.repo.list_recent(limit)

    def search(self, search: str | None = None, category: str | None = None) -> list[ScamReport]:
        reports = self.repo.list_reports()

        if search:
            term = search.lower()
            # Digits-only matching applies to phone-shaped terms, never to free text.
            digits = normalize_phone_number(search) if looks_like_phone_number(search) else ""
            reports = [
                r
                for r in reports
                if term in r.phone_number
                or (digits and digits in r.phone_number)
                or term in r.description.lower()
            ]

        if category:
            reports = [r for r in reports if r.category == category]

        return reports

    def set_verified(self, report_id: str, is_verified: bool) -> ScamReport | None:
        report = self.repo.set_verified(report_id, is_verified)
        if report is not None:
            logger.info("Report %s verification set to %s", report_id, is_verified)
        return report

    def open_dispute(self, submission: DisputeSubmission) -> Dispute:
        # Disputes may reference unknown report ids.
        dispute = self.repo.create_dispute(
            scam_report_id=submission.scam_report_id,
            description=submission.description,
            verification_info=submission.verification_info,
        )
        logger.info("Dispute %s opened against report %s", dispute.id, dispute.scam_report_id)
        return dispute

    def disputes_for(self, report_id: str) -> list[Dispute]:
        return self.repo.list_disputes(report_id)
