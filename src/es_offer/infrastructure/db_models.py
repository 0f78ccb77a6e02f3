"""SQLAlchemy ORM model for es_offer.

`data` holds the versioned binary record; `maker` is denormalized only so
offers can be indexed by their creator.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, LargeBinary, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.es_common.database import Base
from src.es_common.datetime_utils import utc_now


class OfferORM(Base):
    __tablename__ = "offers"

    address: Mapped[str] = mapped_column(String(64), primary_key=True)
    maker: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    storage_deposit: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now()
    )
    # NOTE: No updated_at, offers are only created and consumed
