"""Analysis result persistence and queries."""

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, select

from loiter.analysis.models import AnalysisResult
from loiter.registry.models import Device

logger = logging.getLogger(__name__)


def insert_results(session: Session, results: Sequence[AnalysisResult]) -> int:
    """Append results in one statement, silently skipping exact duplicates.

    Returns the number of rows actually inserted.
    """
    if not results:
        return 0
    rows = [r.model_dump(exclude={"id"}) for r in results]
    stmt = sqlite_insert(AnalysisResult.__table__).on_conflict_do_nothing()  # type: ignore[attr-defined]
    result = session.exec(stmt, params=rows)  # type: ignore[call-overload]
    session.commit()
    inserted = max(result.rowcount, 0)
    if inserted < len(rows):
        logger.debug("Skipped %d duplicate analysis results", len(rows) - inserted)
    return inserted


def _min_score_filter(stmt, min_score: float | None):  # type: ignore[no-untyped-def]
    if min_score is not None:
        stmt = stmt.where(AnalysisResult.persistence_score >= min_score)
    return stmt


def get_results(
    session: Session, min_score: float | None = None, limit: int | None = None
) -> list[AnalysisResult]:
    """Results, highest score first, optionally above a minimum score."""
    stmt = _min_score_filter(select(AnalysisResult), min_score)
    stmt = stmt.order_by(AnalysisResult.persistence_score.desc())  # type: ignore[attr-defined]
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.exec(stmt).all())


def get_results_with_devices(
    session: Session, min_score: float | None = None
) -> list[tuple[AnalysisResult, Device]]:
    """Results joined to their device, highest score first."""
    stmt = select(AnalysisResult, Device).join(
        Device, AnalysisResult.device_id == Device.id  # type: ignore[arg-type]
    )
    stmt = _min_score_filter(stmt, min_score)
    stmt = stmt.order_by(AnalysisResult.persistence_score.desc())  # type: ignore[attr-defined]
    return [(r, d) for r, d in session.exec(stmt).all()]


def get_latest_result(session: Session, device_id: int) -> AnalysisResult | None:
    """Most recent result for a device."""
    stmt = (
        select(AnalysisResult)
        .where(AnalysisResult.device_id == device_id)
        .order_by(AnalysisResult.analysis_timestamp.desc())  # type: ignore[attr-defined]
    )
    return session.exec(stmt).first()


def get_latest_analysis_timestamp(session: Session) -> datetime | None:
    return session.exec(select(func.max(AnalysisResult.analysis_timestamp))).one()


def count_results(session: Session, min_score: float | None = None) -> int:
    stmt = _min_score_filter(select(func.count()).select_from(AnalysisResult), min_score)
    return session.exec(stmt).one()
