from typing import Optional

import httpx
from injector import Injector

from docindex.dependencies.dependency_injection import IndexingDependencies
from docindex.modules.indexing.config import IndexerConfig


def create_injector(
    config: Optional[IndexerConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Injector:
    return Injector([IndexingDependencies(config, http_client)])
