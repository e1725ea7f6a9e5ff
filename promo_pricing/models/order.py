from datetime import datetime
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String

from promo_pricing.database.connection import Base


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False, index=True)
    order_status = Column(String, nullable=False, default="pending", index=True)
    total = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)
