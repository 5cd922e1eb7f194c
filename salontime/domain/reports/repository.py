"""Report repository - Database operations for review reports"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ReviewReport


class ReportRepository:
    """Repository for review report database operations"""

    @staticmethod
    def get_by_reporter(db: Session, review_id: str, reporter_id: str) -> Optional[ReviewReport]:
        return (
            db.query(ReviewReport)
            .filter(ReviewReport.review_id == review_id, ReviewReport.reporter_id == reporter_id)
            .first()
        )

    @staticmethod
    def create(db: Session, **report_data) -> ReviewReport:
        report = ReviewReport(**report_data)
        db.add(report)
        db.commit()
        db.refresh(report)
        return report
