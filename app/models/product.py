from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, JSON, Uuid, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import validates
import uuid
import enum
from app.db.session import Base
from app.utils.timestamps import utcnow


class ProductInterval(str, enum.Enum):
    MONTH = "month"
    YEAR = "year"


class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    polar_product_id = Column(String, nullable=True, unique=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price_amount = Column(Integer, nullable=False)  # Minor currency units (cents)
    interval = Column(
        SQLEnum(ProductInterval, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ProductInterval.MONTH,
    )
    features = Column(JSON, nullable=False, default=list)  # [{"name": ..., "included": bool}]
    is_active = Column(Boolean, nullable=False, default=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("price_amount >= 0", name="ck_products_price_amount_non_negative"),
    )

    @validates("price_amount")
    def _validate_price_amount(self, key, value):
        if value is None or value < 0:
            raise ValueError("price_amount must be >= 0")
        return value
