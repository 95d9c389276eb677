import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Dict, List, Optional

import redis

from .errors import TenantNotFoundError
from .models import DeploymentStatus, Tenant, TenantStatus, build_namespace_name
from .tenant_registry import TenantRegistry
from shared.events import (
    Event,
    tenant_created_event,
    tenant_deleted_event,
    deployment_failed_event,
    deployment_status_changed_event,
)

logger = logging.getLogger(__name__)


class TenantOrchestrator:
    """
    Manages tenant lifecycle:
    - Create tenants (namespace synchronously, deployment in the background)
    - Reconcile deployment status from the platform on read
    - Tear down deployment and namespace on delete

    Gateway calls never run while the registry lock is held.
    """

    def __init__(
        self,
        gateway,
        registry: TenantRegistry = None,
        namespace_prefix: str = 'tenant-',
        deployment_timeout: int = 300,
        max_workers: int = 4,
        redis_client: redis.Redis = None,
        events_channel: str = 'tenants:events'
    ):
        self.gateway = gateway
        self.registry = registry if registry is not None else TenantRegistry()
        self.namespace_prefix = namespace_prefix
        self.deployment_timeout = deployment_timeout
        self.redis = redis_client
        self.events_channel = events_channel
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix='tenant-rollout'
        )
        self._rollouts: Dict[str, Future] = {}
        self._rollouts_lock = threading.Lock()

    def create_tenant(self, tenant_id: str, name: str) -> Tenant:
        """
        Create the tenant namespace, register the tenant and start its rollout.

        Returns as soon as the tenant is registered; the Helm rollout runs in
        the background and its outcome is observed through get_tenant.
        """
        namespace = build_namespace_name(tenant_id, self.namespace_prefix)

        self.registry.reserve(tenant_id)
        try:
            self.gateway.create_isolation_boundary(tenant_id)
            tenant = self.registry.commit(Tenant(
                id=tenant_id,
                name=name,
                namespace=namespace,
                status=TenantStatus.ACTIVE,
                deployment_status=DeploymentStatus.CREATING
            ))
        except Exception:
            self.registry.release(tenant_id)
            raise

        logger.info(f"Tenant created: {tenant_id} ({name})")
        self._publish(tenant_created_event(tenant_id, name, namespace))

        self._start_rollout(tenant)
        return tenant

    def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        """Get a tenant with its deployment status refreshed from the platform."""
        tenant = self.registry.get(tenant_id)
        if tenant is None:
            return None

        status = self.gateway.query_readiness(tenant_id)
        updated = self.registry.update_deployment_status(tenant_id, status)
        if updated is None:
            # Deleted while the platform was being queried
            return None

        if status != tenant.deployment_status:
            self._publish(deployment_status_changed_event(
                tenant_id, tenant.deployment_status.value, status.value
            ))
        return updated

    def list_tenants(self) -> List[Tenant]:
        """List tenants in creation order, with cached deployment status."""
        return self.registry.list()

    def delete_tenant(self, tenant_id: str):
        """
        Uninstall the tenant deployment, delete its namespace, then forget it.

        A platform failure leaves the tenant registered so the delete can be
        retried.
        """
        tenant = self.registry.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)

        self._cancel_rollout(tenant_id)
        self.gateway.teardown_deployment(tenant_id)
        self.gateway.teardown_isolation_boundary(tenant_id)
        if self.registry.remove(tenant_id) is None:
            # A concurrent delete got there first
            raise TenantNotFoundError(tenant_id)

        logger.info(f"Tenant deleted: {tenant_id}")
        self._publish(tenant_deleted_event(tenant_id, tenant.namespace))

    # ==================== Background rollouts ====================

    def _start_rollout(self, tenant: Tenant):
        tenant_id = tenant.id
        future = self._executor.submit(self._roll_out, tenant_id, tenant.created_at)
        with self._rollouts_lock:
            self._rollouts[tenant_id] = future
        future.add_done_callback(lambda f: self._forget_rollout(tenant_id, f))

    def _roll_out(self, tenant_id: str, created_at: datetime):
        try:
            self.gateway.trigger_deployment(tenant_id, timeout=self.deployment_timeout)
            logger.info(f"Deployment rolled out for tenant: {tenant_id}")
        except Exception as e:
            logger.exception(f"Deployment failed for tenant {tenant_id}: {e}")
            updated = self.registry.update_deployment_status(
                tenant_id, DeploymentStatus.ERROR, created_at=created_at
            )
            if updated is not None:
                self._publish(deployment_failed_event(tenant_id, str(e)))

    def _forget_rollout(self, tenant_id: str, future: Future):
        with self._rollouts_lock:
            if self._rollouts.get(tenant_id) is future:
                del self._rollouts[tenant_id]

    def _cancel_rollout(self, tenant_id: str):
        with self._rollouts_lock:
            future = self._rollouts.get(tenant_id)
        if future is not None and future.cancel():
            logger.info(f"Pending deployment cancelled for tenant: {tenant_id}")

    def wait_for_rollouts(self, timeout: float = None) -> bool:
        """Block until in-flight rollouts finish. Returns False on timeout."""
        with self._rollouts_lock:
            pending = list(self._rollouts.values())
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_rollouts: bool = True):
        self._executor.shutdown(wait=wait_for_rollouts)

    # ==================== Events ====================

    def _publish(self, event: Event):
        if self.redis is None:
            return
        try:
            self.redis.publish(self.events_channel, event.to_json())
        except redis.RedisError as e:
            logger.warning(f"Failed to publish {event.type.value} for {event.tenant_id}: {e}")
