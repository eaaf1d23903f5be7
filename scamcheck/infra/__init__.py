from scamcheck.infra.repositories import (
    InMemoryRepository,
    ReportRepository,
    RepositoryError,
    build_repository,
)

__all__ = [
    "InMemoryRepository",
    "ReportRepository",
    "RepositoryError",
    "build_repository",
]
