from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class Application(Base):
    """Applicant entry on a job: who applied and which resume file they sent."""

    __tablename__ = "job_applicants"
    __table_args__ = (
        UniqueConstraint("job_id", "user_id", name="uq_job_applicants_job_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    resume = Column(String(255), nullable=False)  # file name under UPLOAD_DIR
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    job = relationship("Job", back_populates="applicants")
    user = relationship("User", back_populates="applications")
