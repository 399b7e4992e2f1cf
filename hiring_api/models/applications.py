"""Application model for candidate applications."""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import relationship

from hiring_api.config.database import Base
from .base import TimestampMixin, utcnow

# Application lifecycle, driven only by the analysis pipeline
STATUS_PENDING = "pending"
STATUS_ANALYZING = "analyzing"
STATUS_ANALYZED = "analyzed"
STATUS_ANALYSIS_FAILED = "analysis_failed"

APPLICATION_STATUSES = (
    STATUS_PENDING,
    STATUS_ANALYZING,
    STATUS_ANALYZED,
    STATUS_ANALYSIS_FAILED,
)


class Application(TimestampMixin, Base):
    """
    Candidate application to a job posting.

    This is the unit of work of the analysis pipeline and the durable
    store of its result.
    """

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id"), nullable=False)
    job_posting_id = Column(Integer, ForeignKey("job_postings.id"), nullable=False)

    # pending, analyzing, analyzed, analysis_failed
    status = Column(String(50), nullable=False, default=STATUS_PENDING)
    status_note = Column(Text, nullable=True)

    # Analysis record (JSON), null until analyzed
    analysis = Column(Text, nullable=True)
    analysis_error = Column(Text, nullable=True)

    applied_at = Column(DateTime, default=utcnow, nullable=False)
    analyzed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("candidate_id", "job_posting_id", name="uq_applications_candidate_job"),
        Index("idx_applications_status", "status", "updated_at"),
    )

    candidate = relationship("Candidate", back_populates="applications")
    job_posting = relationship("JobPosting", back_populates="applications")

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, candidate={self.candidate_id}, status={self.status})>"
