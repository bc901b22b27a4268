import logging
from datetime import datetime
from typing import Iterable, List, Optional

from spec_trend.records import ProductRecord
from spec_trend.util import as_utc

logger = logging.getLogger(__name__)


def _clean_mold(mold: Optional[str]) -> Optional[str]:
    if mold is None:
        return None
    return mold.strip() or None


def filter_products(
    products: Iterable[ProductRecord],
    start: datetime,
    end: datetime,
    model_id: Optional[int] = None,
    mold: Optional[str] = None,
) -> List[ProductRecord]:
    """Keep products measured within ``[start, end]`` that match model and mold.

    ``None`` for model or mold matches everything. Input order is preserved
    and records are returned as-is.
    """
    start_utc = as_utc(start)
    end_utc = as_utc(end)
    mold_filter = _clean_mold(mold)
    kept = [
        p for p in products
        if start_utc <= as_utc(p.measured_at) <= end_utc
        and (model_id is None or p.model_id == model_id)
        and (mold_filter is None or p.mold == mold_filter)
    ]
    logger.debug(
        "range filter kept %d products (model=%s mold=%s %s..%s)",
        len(kept), model_id, mold_filter, start_utc.isoformat(), end_utc.isoformat(),
    )
    return kept
