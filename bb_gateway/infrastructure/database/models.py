"""SQLAlchemy ORM models for wallets linked to bank connections"""

from sqlalchemy import Column, String, Numeric, DateTime, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

BANK_INTEGRATION = "BANK_INTEGRATION"


class Wallet(Base):
    """Wallet record; bank integrations keep credentials and certificates in metadata"""

    __tablename__ = "wallet"

    id = Column(Text, primary_key=True)
    user_id = Column(Text, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(64), nullable=False, default=BANK_INTEGRATION)
    balance = Column(Numeric(18, 2), nullable=False, default=0)
    # "metadata" is reserved on declarative classes
    wallet_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
