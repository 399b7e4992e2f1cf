"""Candidate model."""

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship

from hiring_api.config.database import Base
from .base import TimestampMixin


class Candidate(TimestampMixin, Base):
    """
    Candidate profile as maintained by the candidate CRUD flows.

    Only the fields read by the analysis pipeline are mapped here.
    """

    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, autoincrement=True)

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)

    # JSON: [{"name": "Python", "level": "advanced"}]
    skills = Column(Text, default="[]")
    # JSON: [{"position": "...", "company": "...", "years": 2}]
    experience = Column(Text, default="[]")
    # JSON: [{"degree": "...", "field_of_study": "..."}]
    education = Column(Text, default="[]")

    years_of_experience = Column(Integer, default=0)
    professional_status = Column(String(100), nullable=True)
    employment_status = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    availability_date = Column(String(50), nullable=True)

    applications = relationship("Application", back_populates="candidate")

    def __repr__(self) -> str:
        return f"<Candidate(id={self.id}, name={self.full_name})>"
