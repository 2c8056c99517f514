"""
Per-product enumerator and extractor selection
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import httpx

from core.exceptions import ConfigError
from ingestion.enumerators.base import ReportEnumerator
from ingestion.enumerators.cm import CM_REPORTING_SCOPES, CMReportEnumerator
from ingestion.enumerators.dv import DV_REPORTING_SCOPES, DVReportEnumerator
from ingestion.extractors.base import CSVExtractor, HeaderHandler
from ingestion.extractors.cm import CMCSVExtractor
from ingestion.extractors.dv import DVCSVExtractor
from ingestion.schema import Schema

EnumeratorFactory = Callable[[httpx.AsyncClient, int, Optional[int]], ReportEnumerator]
ExtractorFactory = Callable[[HeaderHandler, int, Optional[Schema]], CSVExtractor]


@dataclass(frozen=True)
class ProductAdapter:
    name: str
    scopes: Tuple[str, ...]
    enumerator: EnumeratorFactory
    extractor: ExtractorFactory


PRODUCTS: Dict[str, ProductAdapter] = {
    "CM": ProductAdapter("CM", CM_REPORTING_SCOPES, CMReportEnumerator, CMCSVExtractor),
    "DV": ProductAdapter("DV", DV_REPORTING_SCOPES, DVReportEnumerator, DVCSVExtractor),
}


def get_product_adapter(product: str) -> ProductAdapter:
    try:
        return PRODUCTS[product]
    except KeyError:
        raise ConfigError(
            "Provide a supported Marketing Platform product - CM or DV.",
            context={"field": "product", "value": product}
        )
