"""
Finalizer management for AiOperator resources.

The finalizer keeps a deleted AiOperator around until the controller has
seen the deletion request and released it.
"""

import structlog
from kubernetes import client

from aioperator.services.context import ContextData
from aioperator.services.errors import from_api_exception
from aioperator.services.resource import (
    API_GROUP,
    API_VERSION,
    FINALIZER,
    PLURAL,
    AiOperator,
)

logger = structlog.get_logger(__name__)

MERGE_PATCH = "application/merge-patch+json"


async def _merge_patch(ctx: ContextData, resource: AiOperator, body: dict, operation: str):
    try:
        await ctx.call(
            ctx.custom_api.patch_namespaced_custom_object,
            group=API_GROUP,
            version=API_VERSION,
            namespace=resource.namespace,
            plural=PLURAL,
            name=resource.name,
            body=body,
            _content_type=MERGE_PATCH,
        )
    except client.exceptions.ApiException as e:
        if e.status == 404:
            # Already gone, nothing left to guard
            logger.info("AiOperator not found, finalizer update skipped",
                        namespace=resource.namespace, name=resource.name)
            return
        raise from_api_exception(e, operation) from e


async def ensure_present(ctx: ContextData, resource: AiOperator) -> None:
    """
    Add the controller's finalizer if it is not there yet.
    
    Other finalizers are preserved. The patch carries the observed
    resourceVersion, so a concurrent finalizer change surfaces as a
    ConflictError instead of being overwritten.
    """
    if resource.has_finalizer:
        return
    
    body = {
        "metadata": {
            "finalizers": [*resource.finalizers, FINALIZER],
            "resourceVersion": resource.resource_version,
        }
    }
    if resource.resource_version is None:
        del body["metadata"]["resourceVersion"]
    
    await _merge_patch(ctx, resource, body, f"add finalizer to {resource.namespace}/{resource.name}")
    logger.info("Finalizer added", namespace=resource.namespace, name=resource.name)


async def ensure_absent(ctx: ContextData, resource: AiOperator) -> None:
    """Remove all finalizers so a pending deletion can complete."""
    if not resource.finalizers:
        return
    
    body = {"metadata": {"finalizers": None}}
    await _merge_patch(ctx, resource, body, f"remove finalizers from {resource.namespace}/{resource.name}")
    logger.info("Finalizers removed", namespace=resource.namespace, name=resource.name)
