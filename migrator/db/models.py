from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Enum, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column
from migrator.db.session import Base
from migrator.core.workflow import RunStage, RunStatus


class ConversionRun(Base):
    __tablename__ = "conversion_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow,
                                                 nullable=False)

    project_name: Mapped[str] = mapped_column(String(200), nullable=False)
    targets: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    persistence: Mapped[str] = mapped_column(String(20), nullable=False)

    stage: Mapped[RunStage] = mapped_column(Enum(RunStage, native_enum=False, length=50),
                                            default=RunStage.CLASSIFY, nullable=False)
    status: Mapped[RunStatus] = mapped_column(Enum(RunStatus, native_enum=False, length=20),
                                              default=RunStatus.QUEUED, nullable=False)

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    # The submitted sources and options, replayed by the worker
    request: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    result: Mapped[dict | None] = mapped_column(JSON, nullable=True)
