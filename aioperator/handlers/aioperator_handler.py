"""
AiOperator CRD Handler

Connects kopf's watch stream to the Reconciler.
kopf delivers change notifications; the Reconciler decides what to do.
"""

import asyncio

import kopf
import structlog
from kubernetes.config.config_exception import ConfigException

from aioperator.services.config import Config
from aioperator.services.context import ContextData
from aioperator.services.reconciler import Reconciler
from aioperator.services.resource import API_GROUP, API_VERSION, PLURAL

logger = structlog.get_logger(__name__)


@kopf.on.startup()
async def start_reconciler(memo: kopf.Memo, logger, **kwargs):
    """
    Build the reconciliation context and start the worker pool.
    
    Failing to load cluster credentials stops the operator.
    """
    config = memo.get("config") or Config.from_env()
    
    try:
        ctx = ContextData.from_config(config)
    except ConfigException as e:
        raise kopf.PermanentError(f"Cannot load Kubernetes configuration: {e}")
    
    reconciler = Reconciler(ctx)
    memo.reconciler = reconciler
    memo.reconciler_task = asyncio.create_task(reconciler.run())
    
    logger.info(f"Reconciler started with {config.max_workers} workers")


@kopf.on.cleanup()
async def stop_reconciler(memo: kopf.Memo, logger, **kwargs):
    """Stop the worker pool, letting in-flight passes finish."""
    
    reconciler = memo.get("reconciler")
    task = memo.get("reconciler_task")
    if reconciler is None:
        return
    
    reconciler.shutdown()
    if task is not None:
        await task
    logger.info("Reconciler stopped")


@kopf.on.event(API_GROUP, API_VERSION, PLURAL)
async def aioperator_event(event, name, namespace, memo: kopf.Memo, logger, **kwargs):
    """Queue a reconciliation pass for every observed change."""
    
    reconciler = memo.get("reconciler")
    if reconciler is None:
        logger.warning(f"Reconciler not running, dropping event for {name}")
        return
    
    if not namespace:
        # Can never be reconciled; do not set up a re-queue loop for it
        logger.error(f"AiOperator {name} has no namespace, ignoring it")
        return
    
    if event.get("type") == "DELETED":
        logger.info(f"AiOperator deleted: {namespace}/{name}")
        reconciler.forget(namespace, name)
        return
    
    reconciler.enqueue(namespace, name)
