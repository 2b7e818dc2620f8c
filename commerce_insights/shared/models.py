"""Column mixins shared by the mapped platform tables."""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column


class PlatformTimestamps:
    """``created_at`` / ``updated_at`` as the commerce platform writes them.

    Stored timezone-aware in UTC. The service never updates rows, so there is
    no ``onupdate`` hook; the server defaults only matter for fixtures.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
