from enum import Enum
from dataclasses import dataclass
from datetime import datetime
import json


class EventType(str, Enum):
    # Tenant lifecycle
    TENANT_CREATED = "tenant.created"
    TENANT_DELETED = "tenant.deleted"

    # Deployment
    DEPLOYMENT_FAILED = "deployment.failed"
    DEPLOYMENT_STATUS_CHANGED = "deployment.status_changed"


@dataclass
class Event:
    type: EventType
    tenant_id: str
    timestamp: str = None
    data: dict = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow().isoformat() + "Z"
        if self.data is None:
            self.data = {}

    def to_dict(self) -> dict:
        return {
            "type": self.type.value if isinstance(self.type, EventType) else self.type,
            "tenant_id": self.tenant_id,
            "timestamp": self.timestamp,
            "data": self.data
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def tenant_created_event(tenant_id: str, name: str, namespace: str) -> Event:
    return Event(
        type=EventType.TENANT_CREATED,
        tenant_id=tenant_id,
        data={
            "name": name,
            "namespace": namespace
        }
    )


def tenant_deleted_event(tenant_id: str, namespace: str) -> Event:
    return Event(
        type=EventType.TENANT_DELETED,
        tenant_id=tenant_id,
        data={"namespace": namespace}
    )


def deployment_failed_event(tenant_id: str, error: str) -> Event:
    return Event(
        type=EventType.DEPLOYMENT_FAILED,
        tenant_id=tenant_id,
        data={"error": error}
    )


def deployment_status_changed_event(tenant_id: str, from_status: str, to_status: str) -> Event:
    return Event(
        type=EventType.DEPLOYMENT_STATUS_CHANGED,
        tenant_id=tenant_id,
        data={
            "from_status": from_status,
            "to_status": to_status
        }
    )
