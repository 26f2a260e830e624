from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Boolean, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base


def generate_order_id():
    # hex uuid, never contains "_" so it can prefix a transaction uuid
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True)
    email = Column(String, unique=True)
    hashed_password = Column(String)

    orders = relationship("Order", back_populates="user")


class Order(Base):
    __tablename__ = "orders"
    id = Column(String(32), primary_key=True, index=True, default=generate_order_id)
    user_id = Column(Integer, ForeignKey("users.id"))
    total_price = Column(Numeric(10, 2))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    # Written once by a verified eSewa callback
    is_paid = Column(Boolean, default=False, nullable=False)
    paid_at = Column(TIMESTAMP(timezone=True), nullable=True)
    payment_transaction_code = Column(String, nullable=True, index=True)
    payment_status = Column(String, nullable=True)
    payment_update_time = Column(TIMESTAMP(timezone=True), nullable=True)
    payment_payer_email = Column(String, nullable=True)

    user = relationship("User", back_populates="orders")

    @property
    def payment_result(self):
        if self.payment_transaction_code is None:
            return None
        return {
            "transaction_code": self.payment_transaction_code,
            "status": self.payment_status,
            "update_time": self.payment_update_time,
            "payer_email": self.payment_payer_email,
        }
