"""
Read-side mappings of the platform tables the risk engine aggregates over.

These tables are owned and migrated by the membership platform; the engine
only reads them. Columns not used for scoring are omitted.
"""
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text

from app.models.base import Base


class BoxMembership(Base):
    __tablename__ = "box_memberships"

    id = Column(String(36), primary_key=True)
    box_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(64), nullable=False)
    display_name = Column(Text, nullable=True)
    role = Column(String(20), nullable=False)  # "owner" | "head_coach" | "coach" | "athlete"
    is_active = Column(Boolean, nullable=False, default=True)
    checkin_streak = Column(Integer, nullable=False, default=0)
    joined_at = Column(DateTime(timezone=True), nullable=False)


class WodAttendance(Base):
    __tablename__ = "wod_attendance"

    id = Column(String(36), primary_key=True)
    box_id = Column(String(36), nullable=False)
    membership_id = Column(String(36), nullable=False, index=True)
    wod_name = Column(Text, nullable=False)
    # Calendar date of the session, not a timestamp
    attendance_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)  # "attended" | "no_show" | "late_cancel" | "excused"


class AthletePr(Base):
    __tablename__ = "athlete_prs"

    id = Column(String(36), primary_key=True)
    box_id = Column(String(36), nullable=False)
    membership_id = Column(String(36), nullable=False, index=True)
    movement_id = Column(String(36), nullable=False)
    achieved_at = Column(DateTime(timezone=True), nullable=False)


class AthleteBenchmark(Base):
    __tablename__ = "athlete_benchmarks"

    id = Column(String(36), primary_key=True)
    box_id = Column(String(36), nullable=False)
    membership_id = Column(String(36), nullable=False, index=True)
    benchmark_id = Column(String(36), nullable=False)
    achieved_at = Column(DateTime(timezone=True), nullable=False)


class AthleteWellnessCheckin(Base):
    __tablename__ = "athlete_wellness_checkins"

    id = Column(String(36), primary_key=True)
    box_id = Column(String(36), nullable=False)
    membership_id = Column(String(36), nullable=False, index=True)

    # 1-10 self-reported scales
    energy_level = Column(Integer, nullable=False)
    sleep_quality = Column(Integer, nullable=False)
    stress_level = Column(Integer, nullable=False)
    motivation_level = Column(Integer, nullable=False)
    workout_readiness = Column(Integer, nullable=False)

    checkin_date = Column(DateTime(timezone=True), nullable=False)


class WodFeedback(Base):
    __tablename__ = "wod_feedback"

    id = Column(String(36), primary_key=True)
    box_id = Column(String(36), nullable=False)
    membership_id = Column(String(36), nullable=False, index=True)
    rpe = Column(Integer, nullable=False)
    wod_name = Column(Text, nullable=False)
    wod_date = Column(DateTime(timezone=True), nullable=False)
