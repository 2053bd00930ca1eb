"""
Database models for transaction history and indexed wallets.
"""
from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class TransactionRow(Base):
    """Model for one stored transaction of a wallet on a network."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(String(64), nullable=False)
    provider_id = Column(String(50), nullable=False)
    signature = Column(String(128), nullable=False)
    timestamp = Column(BigInteger, nullable=False)  # epoch milliseconds
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('address', 'provider_id', 'signature', name='uq_transaction_address_provider_signature'),
        Index('ix_transactions_history', 'address', 'provider_id', 'timestamp', 'id'),
    )

    def __repr__(self):
        return f"<TransactionRow(id={self.id}, provider_id={self.provider_id}, signature={self.signature})>"


class WalletRegistrationRow(Base):
    """Model for a wallet the indexer keeps up to date."""

    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(String(64), nullable=False)
    provider_id = Column(String(50), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    last_indexed = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('address', 'provider_id', name='uq_wallet_address_provider'),
    )

    def __repr__(self):
        return f"<WalletRegistrationRow(id={self.id}, address={self.address}, provider_id={self.provider_id})>"
