"""Read-only mappings of the upstream intake tables.

The intake questionnaire, the patient profile and the service catalogue are
written by the patient-facing application. Clinidraft only reads them to
assemble the ground truth for draft generation.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinidraft.database.models.base import Base, JSONType, TimestampMixin


class Service(TimestampMixin, Base):
    """A purchasable service; ``type`` decides draft eligibility."""

    __tablename__ = "services"

    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str | None] = mapped_column(Text, nullable=True)


class Profile(TimestampMixin, Base):
    """Patient profile."""

    __tablename__ = "profiles"

    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)


class Intake(TimestampMixin, Base):
    """A patient's request for a service.

    Attributes:
        service_id: Service the patient paid for.
        patient_id: Requesting patient.
        created_at: Request timestamp (from TimestampMixin); used as the
            request date when checking certificate backdating.
        service: Relationship to the Service.
        patient: Relationship to the patient Profile.
        answers: Questionnaire answer rows (normally exactly one).
    """

    __tablename__ = "intakes"

    service_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("services.id"),
        nullable=True,
    )
    patient_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profiles.id"),
        nullable=True,
    )

    service: Mapped["Service"] = relationship("Service", lazy="selectin")
    patient: Mapped["Profile"] = relationship("Profile", lazy="selectin")
    answers: Mapped[list["IntakeAnswers"]] = relationship(
        "IntakeAnswers",
        back_populates="intake",
        order_by="IntakeAnswers.created_at",
        lazy="selectin",
    )


class IntakeAnswers(TimestampMixin, Base):
    """Questionnaire answers for an intake, stored as one JSON document."""

    __tablename__ = "intake_answers"

    intake_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("intakes.id", ondelete="CASCADE"),
        nullable=False,
    )
    answers: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
    )

    intake: Mapped["Intake"] = relationship("Intake", back_populates="answers")
