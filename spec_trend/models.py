from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import String, Integer, Float, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    # stored naive; every reader treats naive timestamps as UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class PartModel(Base):
    __tablename__ = "models"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    part_no: Mapped[str] = mapped_column(String(64), unique=True)
    part_name: Mapped[str] = mapped_column(String(128), default="")

    specifications: Mapped[List["Specification"]] = relationship(
        back_populates="model", order_by="Specification.display_order"
    )


class Specification(Base):
    __tablename__ = "model_specifications"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    model_id: Mapped[int] = mapped_column(ForeignKey("models.id"))
    name: Mapped[str] = mapped_column(String(64))
    unit: Mapped[Optional[str]] = mapped_column(String(16))
    min_value: Mapped[Optional[float]] = mapped_column(Float)
    max_value: Mapped[Optional[float]] = mapped_column(Float)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    model: Mapped[PartModel] = relationship(back_populates="specifications")


class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    model_id: Mapped[int] = mapped_column(ForeignKey("models.id"), index=True)
    mold: Mapped[Optional[str]] = mapped_column(String(64))
    measured_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)

    measurements: Mapped[List["Measurement"]] = relationship(
        back_populates="product", order_by="Measurement.id", cascade="all, delete-orphan"
    )


class Measurement(Base):
    __tablename__ = "measurements"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"))
    spec_id: Mapped[int] = mapped_column(ForeignKey("model_specifications.id"), index=True)
    value: Mapped[float] = mapped_column(Float)
    within_spec: Mapped[bool] = mapped_column(Boolean)   # at recording time

    product: Mapped[Product] = relationship(back_populates="measurements")
