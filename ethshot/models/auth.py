from sqlalchemy import BigInteger, Column, Integer, String

from ethshot.db.base import Base


class WalletUser(Base):
    """Wallets that completed a signature login, with epoch-second timestamps."""

    __tablename__ = "wallet_users"

    wallet_address = Column(String(42), primary_key=True)
    created_at = Column(BigInteger, nullable=False)
    last_login = Column(BigInteger, nullable=False)
    login_count = Column(Integer, nullable=False, default=1)
