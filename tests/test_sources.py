import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from spec_trend.models import Base, Measurement, PartModel, Product, Specification
from spec_trend.records import InvalidRequestError
from spec_trend.sources import SqlRecordSource


@pytest.fixture
def session():
    engine = create_engine("sqlite://", future=True)
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


@pytest.fixture
def part(session):
    m = PartModel(part_no="HX-100", part_name="Housing")
    m.specifications.append(Specification(name="Length", unit="mm", min_value=9.5, max_value=10.5))
    session.add(m)
    session.commit()
    return m


def test_measurements_reference_their_specification():
    [fk] = Measurement.__table__.c.spec_id.foreign_keys
    assert fk.column.table.name == "model_specifications"
    # the owning product carries the timestamp
    assert "measured_at" not in Measurement.__table__.c


def test_record_product_skips_unknown_specs(session, part):
    [spec] = part.specifications
    row = SqlRecordSource(session).record_product(part.id, {spec.id: 10.7, 9999: 1.0}, mold=" M1 ")
    assert row.mold == "M1"
    assert [(m.spec_id, m.within_spec) for m in row.measurements] == [(spec.id, False)]


def test_record_product_with_no_known_spec_stores_nothing(session, part):
    with pytest.raises(InvalidRequestError):
        SqlRecordSource(session).record_product(part.id, {9999: 1.0})
    assert session.scalar(select(func.count()).select_from(Product)) == 0
    assert session.scalar(select(func.count()).select_from(Measurement)) == 0
