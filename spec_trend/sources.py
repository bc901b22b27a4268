"""Where products and specifications come from.

The engine only needs the two lookups described by ``RecordSource`` and
``SpecSource``. ``SqlRecordSource`` answers them from the database and hands
back detached value objects; ``InMemorySource`` answers them from lists.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from spec_trend.classifier import classify
from spec_trend.models import Measurement, Product, Specification
from spec_trend.records import InvalidRequestError, MeasurementSample, ProductRecord, SpecDefinition
from spec_trend.util import as_utc

logger = logging.getLogger(__name__)


class RecordSource(Protocol):
    def get_products_for_model(self, model_id: int) -> List[ProductRecord]: ...


class SpecSource(Protocol):
    def get_specifications(self, model_id: int) -> List[SpecDefinition]: ...


class InMemorySource:
    def __init__(self, products: Sequence[ProductRecord] = (), specs: Optional[Mapping[int, Sequence[SpecDefinition]]] = None):
        self.products = list(products)
        self.specs: Dict[int, List[SpecDefinition]] = {k: list(v) for k, v in (specs or {}).items()}

    def get_products_for_model(self, model_id: int) -> List[ProductRecord]:
        return [p for p in self.products if p.model_id == model_id]

    def get_specifications(self, model_id: int) -> List[SpecDefinition]:
        return sorted(self.specs.get(model_id, []), key=lambda s: (s.display_order, s.id))


def spec_from_row(row: Specification) -> SpecDefinition:
    return SpecDefinition(
        id=row.id,
        name=row.name,
        unit=row.unit,
        min_value=row.min_value,
        max_value=row.max_value,
        display_order=row.display_order,
    )


def product_from_row(row: Product) -> ProductRecord:
    samples = tuple(
        MeasurementSample(
            spec_id=m.spec_id,
            value=float(m.value),
            timestamp=row.measured_at,
            recorded_within_spec=m.within_spec,
            product_id=row.id,
        )
        for m in row.measurements
    )
    return ProductRecord(id=row.id, model_id=row.model_id, measured_at=row.measured_at, mold=row.mold, samples=samples)


class SqlRecordSource:
    def __init__(self, session: Session):
        self.session = session

    def get_products_for_model(self, model_id: int) -> List[ProductRecord]:
        rows = self.session.scalars(
            select(Product)
            .where(Product.model_id == model_id)
            .options(selectinload(Product.measurements))
            .order_by(Product.measured_at.asc(), Product.id.asc())
        ).all()
        return [product_from_row(r) for r in rows]

    def get_specifications(self, model_id: int) -> List[SpecDefinition]:
        rows = self.session.scalars(
            select(Specification)
            .where(Specification.model_id == model_id)
            .order_by(Specification.display_order.asc(), Specification.id.asc())
        ).all()
        return [spec_from_row(r) for r in rows]

    def list_molds(self, model_id: int) -> List[str]:
        rows = self.session.execute(
            select(Product.mold)
            .where(Product.model_id == model_id, Product.mold.isnot(None), Product.mold != "")
            .distinct()
            .order_by(Product.mold.asc())
        ).all()
        cleaned: List[str] = []
        for row in rows:
            name = (row[0] or "").strip()
            if name and name not in cleaned:
                cleaned.append(name)
        return cleaned

    def record_product(
        self,
        model_id: int,
        values: Mapping[int, float],
        mold: Optional[str] = None,
        measured_at: Optional[datetime] = None,
    ) -> Product:
        """Store a product and its measurements, flagging each against the
        bounds in effect now. Values for unknown spec ids are skipped; nothing
        is stored when none of them resolves."""
        specs = {s.id: s for s in self.session.scalars(
            select(Specification).where(Specification.model_id == model_id)
        )}
        stamp = as_utc(measured_at or datetime.now(timezone.utc)).replace(tzinfo=None)
        product = Product(model_id=model_id, mold=(mold or "").strip() or None, measured_at=stamp)
        for spec_id, value in values.items():
            spec = specs.get(spec_id)
            if spec is None:
                logger.warning("ignoring value for unknown spec %s on model %s", spec_id, model_id)
                continue
            sample = MeasurementSample(spec_id=spec_id, value=float(value), timestamp=stamp)
            product.measurements.append(Measurement(
                spec_id=spec_id,
                value=sample.value,
                within_spec=classify(sample, spec_from_row(spec)),
            ))
        if not product.measurements:
            raise InvalidRequestError(f"no value matches a specification of model {model_id}")
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        logger.info("recorded product %s for model %s with %d measurements", product.id, model_id, len(product.measurements))
        return product
