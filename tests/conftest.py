"""
Pytest configuration and fixtures for tenant provisioner tests.
"""
import os
import sys
import threading
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from tenancy.app import create_app
from tenancy.kubernetes_gateway import readiness_from_replicas
from tenancy.models import DeploymentStatus
from tenancy.tenant_orchestrator import TenantOrchestrator
from tenancy.tenant_registry import TenantRegistry


class FakeGateway:
    """
    In-memory stand-in for the Kubernetes gateway.

    Namespaces and (ready, desired) replica counts are tracked per tenant.
    A method listed in `failures` raises the given exception instead.
    """

    def __init__(self):
        self.calls = []
        self.namespaces = set()
        self.replicas = {}
        self.failures = {}
        self.rollout_gate = None
        self._lock = threading.Lock()

    def _record(self, method: str, tenant_id: str):
        with self._lock:
            self.calls.append((method, tenant_id))
        if method in self.failures:
            raise self.failures[method]

    def calls_for(self, tenant_id: str) -> list:
        return [m for m, t in self.calls if t == tenant_id]

    def create_isolation_boundary(self, tenant_id):
        self._record('create_isolation_boundary', tenant_id)
        self.namespaces.add(tenant_id)

    def trigger_deployment(self, tenant_id, timeout=None):
        self.replicas[tenant_id] = (0, 1)
        if self.rollout_gate is not None:
            self.rollout_gate.wait(timeout=5)
        self._record('trigger_deployment', tenant_id)
        self.replicas[tenant_id] = (1, 1)

    def query_readiness(self, tenant_id):
        self._record('query_readiness', tenant_id)
        if tenant_id not in self.namespaces or tenant_id not in self.replicas:
            return DeploymentStatus.ERROR
        ready, desired = self.replicas[tenant_id]
        return readiness_from_replicas(ready, desired)

    def teardown_deployment(self, tenant_id):
        self._record('teardown_deployment', tenant_id)
        self.replicas.pop(tenant_id, None)

    def teardown_isolation_boundary(self, tenant_id):
        self._record('teardown_isolation_boundary', tenant_id)
        self.namespaces.discard(tenant_id)


@pytest.fixture
def gateway():
    """Fake platform gateway."""
    return FakeGateway()


@pytest.fixture
def orchestrator(gateway):
    """Orchestrator wired to the fake gateway."""
    orch = TenantOrchestrator(gateway=gateway, registry=TenantRegistry(), deployment_timeout=5)
    yield orch
    orch.shutdown()


@pytest.fixture
def app(gateway):
    """Create application for testing."""
    app = create_app('testing', gateway=gateway)
    yield app
    app.orchestrator.shutdown()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def mock_redis(mocker):
    """Mock Redis client for event publishing."""
    return mocker.MagicMock()
