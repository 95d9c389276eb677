from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class TenantStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class DeploymentStatus(str, Enum):
    CREATING = "creating"
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


def build_namespace_name(tenant_id: str, prefix: str) -> str:
    """Namespace for a tenant: the configured prefix followed by the id."""
    return f"{prefix}{tenant_id}"


@dataclass
class Tenant:
    id: str
    name: str
    namespace: str
    created_at: datetime = field(default_factory=datetime.utcnow)
    status: TenantStatus = TenantStatus.ACTIVE
    deployment_status: DeploymentStatus = DeploymentStatus.CREATING

    def copy(self) -> "Tenant":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'namespace': self.namespace,
            'createdAt': self.created_at.isoformat(timespec='milliseconds') + 'Z',
            'status': self.status.value,
            'deploymentStatus': self.deployment_status.value,
        }
