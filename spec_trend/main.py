import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Path as FPath
from pydantic import BaseModel, Field
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session as OrmSession, sessionmaker
from sqlalchemy.pool import StaticPool

from spec_trend.classifier import spec_index
from spec_trend.config import DATA_DIR, get_settings
from spec_trend.engine import (
    SeriesRequest,
    build_bounded_series,
    build_calendar_average_series,
    build_measurement_table,
    resolve_granularity,
)
from spec_trend.granularity import Granularity
from spec_trend.models import Base, PartModel, Specification
from spec_trend.production import daily_production
from spec_trend.range_filter import filter_products
from spec_trend.records import InvalidRequestError, Series
from spec_trend.sources import SqlRecordSource
from spec_trend.util import parse_window_bound, utc_day

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)
# --- DB
if settings.db_url in ("sqlite://", "sqlite:///:memory:"):
    engine = create_engine(settings.db_url, future=True, echo=settings.sql_echo,
                           connect_args={"check_same_thread": False}, poolclass=StaticPool)
elif settings.db_url.startswith("sqlite"):
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    engine = create_engine(settings.db_url, future=True, echo=settings.sql_echo,
                           connect_args={"check_same_thread": False})
else:
    engine = create_engine(settings.db_url, future=True, echo=settings.sql_echo, pool_pre_ping=True)
Session = sessionmaker(engine, expire_on_commit=False, future=True)
Base.metadata.create_all(engine)


def get_db() -> Iterator[OrmSession]:
    with Session() as s:
        yield s


app = FastAPI(title="Spec Trend")
# --- Pydantic DTOs
class PartModelIn(BaseModel):
    part_no: str = Field(..., max_length=64)
    part_name: str = Field("", max_length=128)
class PartModelOut(PartModelIn):
    id: int
class SpecIn(BaseModel):
    name: str = Field(..., max_length=64)
    unit: Optional[str] = Field(None, max_length=16)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    display_order: int = 0
class SpecOut(SpecIn):
    id: int
    model_id: int
class ProductIn(BaseModel):
    mold: Optional[str] = Field(None, max_length=64)
    measured_at: Optional[datetime] = None
    values: Dict[int, float]
class MeasurementOut(BaseModel):
    spec_id: int
    value: float
    within_spec: bool
class ProductOut(BaseModel):
    id: int
    model_id: int
    mold: Optional[str] = None
    measured_at: str
    measurements: List[MeasurementOut]
class PointOut(BaseModel):
    time: str
    value: float
class AggregateOut(BaseModel):
    time: str
    min: float
    max: float
    average: float
    count: int
class SeriesOut(BaseModel):
    label: str
    kind: str
    group_key: int
    points: List[PointOut]
    aggregates: List[AggregateOut] = []
class SeriesResponse(BaseModel):
    model_id: int
    granularity: str
    start: str
    end: str
    mold: Optional[str] = None
    series: List[SeriesOut]
class CalendarAverageOut(BaseModel):
    model_id: int
    labels: List[str]
    days: List[str]
    series: Dict[int, List[Optional[float]]]
class CellOut(BaseModel):
    spec_id: int
    value: float
    within_spec: bool
    recorded_within_spec: Optional[bool] = None
class MeasurementRowOut(BaseModel):
    product_id: int
    mold: Optional[str] = None
    measured_at: str
    ok: bool
    cells: List[CellOut]


def _series_out(s: Series) -> SeriesOut:
    return SeriesOut(
        label=s.label,
        kind=s.kind.value,
        group_key=s.group_key,
        points=[PointOut(time=t.isoformat(), value=v) for t, v in s.points],
        aggregates=[
            AggregateOut(time=a.time.isoformat(), min=a.min, max=a.max, average=a.average, count=a.count)
            for a in s.aggregates
        ],
    )


def _window(start: Optional[str], end: Optional[str]):
    """Parse a start/end pair, defaulting to the configured trailing window."""
    try:
        end_dt = parse_window_bound(end, False, "end")
        start_dt = parse_window_bound(start, True, "start")
    except InvalidRequestError as exc:
        raise HTTPException(400, str(exc)) from exc
    if end_dt is None:
        end_dt = parse_window_bound(datetime.now(timezone.utc).date(), False)
    if start_dt is None:
        start_dt = parse_window_bound(utc_day(end_dt) - timedelta(days=settings.default_window_days - 1), True)
    if end_dt < start_dt:
        raise HTTPException(400, "start must be on or before end")
    return start_dt, end_dt


def _check_daily_span(start_dt: datetime, end_dt: datetime) -> None:
    day_count = (utc_day(end_dt) - utc_day(start_dt)).days + 1
    if day_count > settings.max_daily_buckets:
        raise HTTPException(400, f"Date range too large for daily view (max {settings.max_daily_buckets} days).")


def _require_model(s: OrmSession, model_id: int) -> PartModel:
    row = s.get(PartModel, model_id)
    if not row:
        raise HTTPException(404, "Model not found")
    return row
# --- Models & specifications
@app.get("/api/models", response_model=List[PartModelOut])
def list_models(s: OrmSession = Depends(get_db)):
    rows = s.scalars(select(PartModel).order_by(PartModel.part_no.asc())).all()
    return [PartModelOut(id=r.id, part_no=r.part_no, part_name=r.part_name) for r in rows]
@app.post("/api/models", response_model=PartModelOut)
def create_model(m: PartModelIn, s: OrmSession = Depends(get_db)):
    if s.scalars(select(PartModel).where(PartModel.part_no == m.part_no)).first():
        raise HTTPException(409, "Part number already used.")
    row = PartModel(part_no=m.part_no, part_name=m.part_name)
    s.add(row); s.commit(); s.refresh(row)
    return PartModelOut(id=row.id, **m.model_dump())
@app.get("/api/models/{model_id}/specs", response_model=List[SpecOut])
def list_specs(model_id: int = FPath(..., ge=1), s: OrmSession = Depends(get_db)):
    _require_model(s, model_id)
    specs = SqlRecordSource(s).get_specifications(model_id)
    return [SpecOut(id=sp.id, model_id=model_id, name=sp.name, unit=sp.unit, min_value=sp.min_value,
                    max_value=sp.max_value, display_order=sp.display_order) for sp in specs]
@app.post("/api/models/{model_id}/specs", response_model=SpecOut)
def create_spec(spec: SpecIn, model_id: int = FPath(..., ge=1), s: OrmSession = Depends(get_db)):
    _require_model(s, model_id)
    row = Specification(model_id=model_id, **spec.model_dump())
    s.add(row); s.commit(); s.refresh(row)
    return SpecOut(id=row.id, model_id=model_id, **spec.model_dump())
@app.put("/api/specs/{spec_id}", response_model=SpecOut)
def update_spec(spec: SpecIn, spec_id: int = FPath(..., ge=1), s: OrmSession = Depends(get_db)):
    row = s.get(Specification, spec_id)
    if not row: raise HTTPException(404, "Specification not found")
    for k, val in spec.model_dump().items(): setattr(row, k, val)
    s.commit(); s.refresh(row)
    logger.info("spec %s bounds now [%s, %s]", row.id, row.min_value, row.max_value)
    return SpecOut(id=row.id, model_id=row.model_id, **spec.model_dump())
@app.get("/api/models/{model_id}/molds", response_model=List[str])
def list_molds(model_id: int = FPath(..., ge=1), s: OrmSession = Depends(get_db)):
    _require_model(s, model_id)
    return SqlRecordSource(s).list_molds(model_id)
# --- Record a measured product (classified against the bounds in effect now)
@app.post("/api/models/{model_id}/products", response_model=ProductOut)
def record_product(p: ProductIn, model_id: int = FPath(..., ge=1), s: OrmSession = Depends(get_db)):
    _require_model(s, model_id)
    if not p.values:
        raise HTTPException(400, "At least one measurement value is required.")
    source = SqlRecordSource(s)
    known = {sp.id for sp in source.get_specifications(model_id)}
    unknown = sorted(set(p.values) - known)
    if unknown:
        raise HTTPException(404, f"Specification not found: {', '.join(map(str, unknown))}")
    row = source.record_product(model_id, p.values, mold=p.mold, measured_at=p.measured_at)
    return ProductOut(
        id=row.id,
        model_id=row.model_id,
        mold=row.mold,
        measured_at=row.measured_at.isoformat(),
        measurements=[MeasurementOut(spec_id=m.spec_id, value=m.value, within_spec=m.within_spec)
                      for m in row.measurements],
    )
# --- Trend chart
@app.get("/api/models/{model_id}/series", response_model=SeriesResponse)
def model_series(
    model_id: int = FPath(..., ge=1),
    spec_id: List[int] = Query(default=[]),
    start: Optional[str] = Query(None, description="Start date or ISO timestamp"),
    end: Optional[str] = Query(None, description="End date or ISO timestamp"),
    mold: Optional[str] = Query(None),
    s: OrmSession = Depends(get_db),
):
    _require_model(s, model_id)
    start_dt, end_dt = _window(start, end)
    request = SeriesRequest(model_id=model_id, spec_ids=tuple(spec_id), start=start_dt, end=end_dt, mold=mold)
    try:
        granularity = resolve_granularity(request)
        if granularity is Granularity.DAILY:
            _check_daily_span(start_dt, end_dt)
        series = build_bounded_series(request, SqlRecordSource(s))
    except InvalidRequestError as exc:
        raise HTTPException(400, str(exc)) from exc
    return SeriesResponse(
        model_id=model_id,
        granularity=granularity.value,
        start=start_dt.isoformat(),
        end=end_dt.isoformat(),
        mold=(mold or "").strip() or None,
        series=[_series_out(x) for x in series],
    )
# --- Daily averages across specifications
@app.get("/api/models/{model_id}/calendar-average", response_model=CalendarAverageOut)
def model_calendar_average(
    model_id: int = FPath(..., ge=1),
    spec_id: List[int] = Query(default=[]),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    mold: Optional[str] = Query(None),
    s: OrmSession = Depends(get_db),
):
    _require_model(s, model_id)
    start_dt, end_dt = _window(start, end)
    _check_daily_span(start_dt, end_dt)
    source = SqlRecordSource(s)
    products = filter_products(source.get_products_for_model(model_id), start_dt, end_dt, model_id=model_id, mold=mold)
    specs = source.get_specifications(model_id)
    if spec_id:
        wanted = set(spec_id)
        specs = [sp for sp in specs if sp.id in wanted]
    result = build_calendar_average_series(products, specs, settings.day_label_format)
    return CalendarAverageOut(
        model_id=model_id,
        labels=result.labels,
        days=[d.isoformat() for d in result.days],
        series=result.series,
    )
# --- Measurement table with display-time classification
@app.get("/api/models/{model_id}/measurements", response_model=List[MeasurementRowOut])
def model_measurements(
    model_id: int = FPath(..., ge=1),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    mold: Optional[str] = Query(None),
    s: OrmSession = Depends(get_db),
):
    _require_model(s, model_id)
    start_dt, end_dt = _window(start, end)
    source = SqlRecordSource(s)
    products = filter_products(source.get_products_for_model(model_id), start_dt, end_dt, model_id=model_id, mold=mold)
    rows = build_measurement_table(products, source.get_specifications(model_id))
    return [
        MeasurementRowOut(
            product_id=row.product.id,
            mold=row.product.mold,
            measured_at=row.product.measured_at.isoformat(),
            ok=row.ok,
            cells=[
                CellOut(
                    spec_id=r.sample.spec_id,
                    value=r.sample.value,
                    within_spec=r.within_spec,
                    recorded_within_spec=r.sample.recorded_within_spec,
                )
                for r in row.results
            ],
        )
        for row in rows
    ]
# --- Production output (OK/NG products per day)
@app.get("/api/production/output")
def production_output(
    start: Optional[str] = Query(None, description="Start date (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="End date (YYYY-MM-DD)"),
    model_id: Optional[int] = Query(None, ge=1),
    s: OrmSession = Depends(get_db),
):
    start_dt, end_dt = _window(start, end)
    _check_daily_span(start_dt, end_dt)
    source = SqlRecordSource(s)
    if model_id is not None:
        model_ids = [_require_model(s, model_id).id]
    else:
        model_ids = list(s.scalars(select(PartModel.id).order_by(PartModel.id.asc())))

    products = []
    specs_by_model = {}
    for mid in model_ids:
        products.extend(filter_products(source.get_products_for_model(mid), start_dt, end_dt, model_id=mid))
        specs_by_model[mid] = spec_index(source.get_specifications(mid))
    buckets = daily_production(products, specs_by_model, start_dt, end_dt, max_days=settings.max_daily_buckets)

    total_ok = sum(b.ok for b in buckets)
    total_ng = sum(b.ng for b in buckets)
    total = total_ok + total_ng
    return {
        "interval": "day",
        "start": utc_day(start_dt).isoformat(),
        "end": utc_day(end_dt).isoformat(),
        "bucket_count": len(buckets),
        "model_id": model_id,
        "buckets": [
            {"label": b.day.isoformat(), "ok": b.ok, "ng": b.ng, "total": b.total, "defect_rate": b.defect_rate}
            for b in buckets
        ],
        "totals": {
            "ok": total_ok,
            "ng": total_ng,
            "total": total,
            "defect_rate": round(total_ng * 100.0 / total, 1) if total else 0.0,
        },
    }
# --- Health
@app.get("/api/health")
def health():
    return {"status": "ok"}
