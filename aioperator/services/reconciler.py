"""
Reconciler - the AiOperator control loop.

Each pass:
1. Load the resource fresh from the API server
2. Determine the action (Create / Update / Delete / NoOp)
3. Run the action's side effects
4. Schedule the next pass (or a backoff after an error)

Passes are pulled from a WorkQueue by a fixed number of asyncio workers, so
different resources reconcile concurrently while a single resource is never
reconciled twice at the same time.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import kopf
import structlog
from kubernetes import client

from aioperator.services import finalizer
from aioperator.services.actions import Action, determine_action, recorded_fingerprint
from aioperator.services.annotations import get_snapshot
from aioperator.services.context import ContextData
from aioperator.services.errors import UserInputError, from_api_exception
from aioperator.services.fingerprint import fingerprint
from aioperator.services.resource import API_GROUP, API_VERSION, PLURAL, AiOperator
from aioperator.services.status import apply_status, build_status
from aioperator.services.workqueue import ShutDown, WorkQueue

logger = structlog.get_logger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""
    key: tuple[str, str]
    action: Optional[Action] = None
    requeue_after: Optional[float] = None  # None = do not re-queue
    error: Optional[Exception] = None
    
    @property
    def success(self) -> bool:
        return self.error is None


class Reconciler:
    """
    Drives AiOperator resources toward their desired state.
    
    Keys are (namespace, name) tuples. The watch feeds keys in through
    enqueue(); the workers started by run() do the rest.
    """
    
    def __init__(self, ctx: ContextData, queue: WorkQueue = None):
        self.ctx = ctx
        self.config = ctx.config
        self.queue = queue or WorkQueue()
    
    def enqueue(self, namespace: str, name: str) -> None:
        """Request a pass for a resource as soon as a worker is free."""
        self.queue.add((namespace, name))
    
    def forget(self, namespace: str, name: str) -> None:
        """Drop all pending passes for a resource that no longer exists."""
        self.queue.forget((namespace, name))
    
    async def _fetch(self, namespace: str, name: str) -> Optional[dict]:
        try:
            return await self.ctx.call(
                self.ctx.custom_api.get_namespaced_custom_object,
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=PLURAL,
                name=name,
            )
        except client.exceptions.ApiException as e:
            if e.status == 404:
                return None
            raise from_api_exception(e, f"read AiOperator {namespace}/{name}") from e
    
    async def determine(self, resource: AiOperator) -> tuple[Action, str]:
        """Return the action for this pass and the resource's current fingerprint."""
        current = fingerprint(resource.name, resource.prompt)
        
        if resource.deletion_requested or not resource.has_finalizer:
            # The fingerprint comparison cannot change the outcome
            previous = recorded_fingerprint(None, resource.status)
        else:
            snapshot = await get_snapshot(self.ctx, resource.name, resource.namespace)
            previous = recorded_fingerprint(snapshot, resource.status)
        
        action = determine_action(
            deletion_requested=resource.deletion_requested,
            has_finalizer=resource.has_finalizer,
            previous_fingerprint=previous,
            current_fingerprint=current,
        )
        return action, current
    
    async def _apply(self, resource: AiOperator, state_hash: str) -> None:
        """Create/Update: take ownership, call the provider, record the result."""
        await finalizer.ensure_present(self.ctx, resource)
        
        answer = await self.ctx.completion.invoke(resource.prompt)
        
        status = build_status(resource.status, answer=answer, state_hash=state_hash)
        await apply_status(self.ctx, resource, status)
    
    async def reconcile(self, key: tuple[str, str]) -> ReconcileResult:
        """
        Run one pass for a key.
        
        Never raises for reconciliation failures; they are turned into a
        ReconcileResult by on_error().
        """
        namespace, name = key
        action = None
        
        try:
            if not namespace:
                raise UserInputError(f"AiOperator '{name}' has no namespace")
            
            body = await self._fetch(namespace, name)
            if body is None:
                logger.info("AiOperator is gone, nothing to reconcile",
                            namespace=namespace, name=name)
                return ReconcileResult(key=key)
            
            resource = AiOperator.from_body(body)
            action, state_hash = await self.determine(resource)
            logger.info("Reconciling AiOperator", namespace=namespace, name=name,
                        action=action.value)
            
            if action in (Action.CREATE, Action.UPDATE):
                await self._apply(resource, state_hash)
                requeue_after = self.config.requeue_interval
            elif action == Action.DELETE:
                await finalizer.ensure_absent(self.ctx, resource)
                requeue_after = self.config.delete_requeue_interval
            elif action == Action.NOOP:
                requeue_after = self.config.requeue_interval
            else:
                raise ValueError(f"Unhandled action: {action}")
            
            return ReconcileResult(key=key, action=action, requeue_after=requeue_after)
        
        except Exception as e:
            return self.on_error(key, action, e)
    
    def on_error(self, key: tuple[str, str], action: Optional[Action], error: Exception) -> ReconcileResult:
        """Log a failed pass and decide whether to retry it."""
        namespace, name = key
        action_name = action.value if action else None
        
        if isinstance(error, UserInputError):
            logger.error("Invalid AiOperator, giving up", namespace=namespace, name=name,
                         action=action_name, error=str(error))
            return ReconcileResult(key=key, action=action, error=error)
        
        logger.warning("Reconciliation failed, retrying", namespace=namespace, name=name,
                       action=action_name, error=str(error),
                       retry_in=self.config.error_requeue_interval,
                       exc_info=not isinstance(error, kopf.TemporaryError))
        return ReconcileResult(
            key=key,
            action=action,
            requeue_after=self.config.error_requeue_interval,
            error=error,
        )
    
    async def process(self, key: tuple[str, str]) -> ReconcileResult:
        """Reconcile a key and schedule its next pass."""
        result = await self.reconcile(key)
        
        if result.requeue_after is None:
            self.queue.forget(key)
        else:
            self.queue.add_after(key, result.requeue_after)
            if result.success:
                logger.info("Reconciliation successful", namespace=key[0], name=key[1],
                            action=result.action.value if result.action else None,
                            requeue_after=result.requeue_after)
        return result
    
    async def _worker(self, index: int) -> None:
        logger.debug("Reconcile worker started", worker=index)
        while True:
            try:
                key = await self.queue.get()
            except ShutDown:
                logger.debug("Reconcile worker stopped", worker=index)
                return
            try:
                await self.process(key)
            finally:
                self.queue.done(key)
    
    async def run(self) -> None:
        """Run the worker pool until shutdown() is called."""
        logger.info("Starting reconcile workers", workers=self.config.max_workers)
        await asyncio.gather(*(self._worker(i) for i in range(self.config.max_workers)))
    
    def shutdown(self) -> None:
        self.queue.shutdown(workers=self.config.max_workers)
