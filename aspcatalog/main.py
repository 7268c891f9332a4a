"""Catalog start-up for the storefront process embedding this package."""

import logging
from dataclasses import dataclass
from pathlib import Path

from aspcatalog.catalog.service import CatalogQueryService
from aspcatalog.config import Settings, settings
from aspcatalog.logging_config import setup_logging
from aspcatalog.policy.filters import StorefrontContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogApp:
    """Everything a request handler needs: the deployment context and the service."""

    context: StorefrontContext
    service: CatalogQueryService


def create_catalog_app(
    config: Settings | None = None, base_dir: str | Path | None = None
) -> CatalogApp:
    """
    Configure logging and build the storefront context from settings.

    Site mode is read here once; everything downstream receives it through
    the returned context.

    Args:
        config: Settings to use (defaults to the module-level settings)
        base_dir: Directory for logs/, overriding config.log_dir
    """
    config = config or settings

    setup_logging(base_dir=base_dir or config.log_dir or None, level=config.log_level)

    context = StorefrontContext.from_settings(config)
    service = CatalogQueryService(metrics_enabled=config.metrics_enabled)

    logger.info(
        f"Catalog ready: site_mode={context.site_mode.value} brand={context.brand} "
        f"preferred={list(context.preferred_providers)}"
    )
    return CatalogApp(context=context, service=service)
