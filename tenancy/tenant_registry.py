import threading
from datetime import datetime
from typing import Dict, List, Optional, Set

from .errors import TenantAlreadyExistsError
from .models import DeploymentStatus, Tenant


class TenantRegistry:
    """
    In-memory registry of tenants, guarded by a single lock.

    Records handed out are copies; the only mutation after insertion is the
    cached deployment status. Ids being provisioned are held as reservations
    so concurrent creates of the same id cannot both succeed.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tenants: Dict[str, Tenant] = {}
        self._reserved: Set[str] = set()

    def reserve(self, tenant_id: str):
        """Claim an id for creation; raises if it is registered or already claimed."""
        with self._lock:
            if tenant_id in self._tenants or tenant_id in self._reserved:
                raise TenantAlreadyExistsError(tenant_id)
            self._reserved.add(tenant_id)

    def release(self, tenant_id: str):
        with self._lock:
            self._reserved.discard(tenant_id)

    def commit(self, tenant: Tenant) -> Tenant:
        """Insert a reserved tenant and drop its reservation."""
        with self._lock:
            if tenant.id in self._tenants:
                raise TenantAlreadyExistsError(tenant.id)
            self._reserved.discard(tenant.id)
            self._tenants[tenant.id] = tenant.copy()
            return tenant.copy()

    def get(self, tenant_id: str) -> Optional[Tenant]:
        with self._lock:
            tenant = self._tenants.get(tenant_id)
            return tenant.copy() if tenant else None

    def list(self) -> List[Tenant]:
        with self._lock:
            return [t.copy() for t in self._tenants.values()]

    def update_deployment_status(
        self,
        tenant_id: str,
        status: DeploymentStatus,
        created_at: datetime = None
    ) -> Optional[Tenant]:
        """
        Overwrite the cached status. Returns None if the tenant is gone, or if
        created_at is given and the id now belongs to a newer tenant.
        """
        with self._lock:
            tenant = self._tenants.get(tenant_id)
            if tenant is None:
                return None
            if created_at is not None and tenant.created_at != created_at:
                return None
            tenant.deployment_status = status
            return tenant.copy()

    def remove(self, tenant_id: str) -> Optional[Tenant]:
        with self._lock:
            return self._tenants.pop(tenant_id, None)

