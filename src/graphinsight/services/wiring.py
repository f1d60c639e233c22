"""Compose config, storage and engine into a ready-to-use analysis service."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from graphinsight.analytics.engine import GraphAnalyticsEngine
from graphinsight.config.models import AnalyticsConfig
from graphinsight.services.analysis_service import AnalysisService
from graphinsight.storage.gateway import StorageConfig, StorageGateway, open_gateway
from graphinsight.storage.repositories import GraphRepository, InfluencerRepository

log = logging.getLogger(__name__)


@dataclass
class ServiceResource:
    """Bundle of service, gateway, and cleanup hook."""

    service: AnalysisService
    gateway: StorageGateway
    close: Callable[[], None]


def storage_config_for(config: AnalyticsConfig) -> StorageConfig:
    """
    Choose the storage configuration matching the analytics settings.

    Returns
    -------
    StorageConfig
        Read-only config when ``read_only`` is set, otherwise ingest-ready.
    """
    if config.read_only:
        return StorageConfig.for_readonly(config.db_path)
    return StorageConfig.for_ingest(config.db_path)


def build_service_resource(
    config: AnalyticsConfig,
    *,
    gateway: StorageGateway | None = None,
    engine: GraphAnalyticsEngine | None = None,
) -> ServiceResource:
    """
    Construct the analysis service over a DuckDB gateway.

    A gateway passed in stays owned by the caller; one opened here is closed
    by the returned hook.

    Parameters
    ----------
    config:
        Validated analytics configuration.
    gateway:
        Optional pre-opened gateway (tests, embedding).
    engine:
        Optional engine override; defaults to one built from ``config``.

    Returns
    -------
    ServiceResource
        Service plus shutdown hook.
    """
    owns_gateway = gateway is None
    gw = gateway if gateway is not None else open_gateway(storage_config_for(config))
    read_only = gw.config.read_only
    service = AnalysisService(
        engine or GraphAnalyticsEngine(config.engine_options()),
        graph_store=GraphRepository(gw),
        record_store=InfluencerRepository(gw),
        persist_influencers=config.persist_influencers and not read_only,
        cluster_key=config.cluster_key,
        store_lock=threading.Lock(),
    )
    if read_only and config.persist_influencers:
        log.info("Database opened read-only; influencer persistence disabled")

    def _close() -> None:
        if owns_gateway:
            gw.close()

    return ServiceResource(service=service, gateway=gw, close=_close)
