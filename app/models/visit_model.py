from datetime import datetime
from typing import Optional, TYPE_CHECKING
import uuid
from sqlalchemy import TIMESTAMP, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from app.db.base import Base
from app.schemas.visit_schemas import VisitType, visit_type_enum

if TYPE_CHECKING:
    from app.models.user_model import User


class Visit(Base):
    """One clinic visit in a mother's ledger. Never deleted."""

    __tablename__ = "visits"

    id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        index=True,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("mothers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[VisitType] = mapped_column(
        visit_type_enum, nullable=False, index=True
    )
    date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    health_worker_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    health_worker: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[health_worker_id], lazy="selectin"
    )

    @property
    def is_anc(self) -> bool:
        return self.type.is_anc

    def __repr__(self) -> str:
        return f"<Visit id={self.id} type={self.type.value} patient={self.patient_id}>"
