from __future__ import annotations

from dataclasses import dataclass

from fastapi import FastAPI

from src.alerting.config import BackendConfig
from src.alerting.db.data_sources import MongoDataSourceDirectory
from src.alerting.db.dashboards import MongoDashboardStore
from src.alerting.db.mongo import MongoManager
from src.alerting.services.condition_executor import ConditionExecutor
from src.alerting.services.condition_loader import ConditionLoader
from src.alerting.services.engine_client import HttpExecutionEngine
from src.alerting.services.ports import ExecutionEngine


@dataclass
class AppState:
    """Typed app.state container for shared collaborators."""

    config: BackendConfig
    mongo: MongoManager
    loader: ConditionLoader
    executor: ConditionExecutor
    engine: ExecutionEngine


# PUBLIC_INTERFACE
def build_state(config: BackendConfig) -> AppState:
    """Wire the Mongo-backed ports and the HTTP execution engine into loader and executor."""
    mongo = MongoManager(config.mongo_uri, config.mongo_db_name)
    engine = HttpExecutionEngine(config.engine_url, timeout_sec=float(config.engine_timeout_sec))
    return AppState(
        config=config,
        mongo=mongo,
        loader=ConditionLoader(
            MongoDashboardStore(mongo),
            MongoDataSourceDirectory(mongo, cache_ttl_sec=config.datasource_cache_ttl_sec),
        ),
        executor=ConditionExecutor(engine, debug=config.eval_debug),
        engine=engine,
    )


# PUBLIC_INTERFACE
def init_state(app: FastAPI, config: BackendConfig) -> None:
    """Initialize app.state with the evaluation collaborators and config."""
    app.state.state = build_state(config)


# PUBLIC_INTERFACE
def get_state(app: FastAPI) -> AppState:
    """Fetch typed AppState from a FastAPI app."""
    return app.state.state  # type: ignore[attr-defined]
