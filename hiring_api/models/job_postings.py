"""Job posting model."""

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship

from hiring_api.config.database import Base
from .base import TimestampMixin


class JobPosting(TimestampMixin, Base):
    """
    Open position candidates apply to.

    Requirement fields are free text as entered by the company.
    """

    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=True)

    # Requirements
    education_level = Column(String(100), nullable=True)
    field_of_study = Column(String(255), nullable=True)
    years_experience_required = Column(Integer, default=0)
    experience_domain = Column(String(255), nullable=True)
    hard_skills = Column(Text, nullable=True)  # Comma separated: "NodeJS, Mongoose"
    soft_skills = Column(Text, nullable=True)
    languages = Column(Text, nullable=True)

    applications = relationship("Application", back_populates="job_posting")

    def __repr__(self) -> str:
        return f"<JobPosting(id={self.id}, title={self.title})>"
