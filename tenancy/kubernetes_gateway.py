"""
Kubernetes gateway for tenant workloads.

Namespaces, services, deployments and ingresses go through the Kubernetes API;
the tenant application itself is installed as a Helm release. Nothing here
holds tenant state: every call derives names from the tenant id.
"""
import json
import logging
import subprocess
from typing import List, Optional, Tuple

from .errors import DeploymentTimeoutError, HelmCommandError
from .models import DeploymentStatus, build_namespace_name

logger = logging.getLogger(__name__)

APP_LABEL = 'tenant-app'
TENANT_LABEL = 'tenant'


# ==================== Failure classification ====================

def is_conflict(error: Exception) -> bool:
    """API error meaning the object already exists."""
    return getattr(error, 'status', None) == 409


def is_not_found(error: Exception) -> bool:
    """API error meaning the object (or its namespace) does not exist."""
    return getattr(error, 'status', None) == 404


def helm_release_exists(stderr: str) -> bool:
    """helm install output meaning the release is already installed."""
    text = (stderr or '').lower()
    return (
        'cannot re-use a name that is still in use' in text
        or 'already installed' in text
    )


def helm_release_missing(stderr: str) -> bool:
    """helm uninstall output meaning there was nothing to remove."""
    text = (stderr or '').lower()
    return 'not found' in text


def select_by_prefix(names: List[str], tenant_id: str) -> Optional[str]:
    """Prefer a name starting with the tenant id, else the first one."""
    for name in names:
        if name.startswith(tenant_id):
            return name
    return names[0] if names else None


class KubernetesGateway:
    """Translates tenant lifecycle intents into Kubernetes and Helm calls."""

    def __init__(
        self,
        namespace_prefix: str = 'tenant-',
        host_suffix: str = 'localhost',
        ingress_class: str = 'nginx',
        default_port: int = 80,
        helm_binary: str = 'helm',
        chart: str = 'echo-server',
        chart_repo: str = None,
        chart_version: str = None,
        deployment_timeout: int = 300
    ):
        self.namespace_prefix = namespace_prefix
        self.host_suffix = host_suffix
        self.ingress_class = ingress_class
        self.default_port = default_port
        self.helm_binary = helm_binary
        self.chart = chart
        self.chart_repo = chart_repo or None
        self.chart_version = chart_version or None
        self.deployment_timeout = deployment_timeout
        self._core_api = None
        self._apps_api = None
        self._networking_api = None
        self._config_loaded = False

    @classmethod
    def from_config(cls, config) -> "KubernetesGateway":
        return cls(
            namespace_prefix=config['NAMESPACE_PREFIX'],
            host_suffix=config['HOST_SUFFIX'],
            ingress_class=config['INGRESS_CLASS'],
            default_port=config['SERVICE_DEFAULT_PORT'],
            helm_binary=config['HELM_BINARY'],
            chart=config['HELM_CHART'],
            chart_repo=config['HELM_REPO'],
            chart_version=config['HELM_CHART_VERSION'],
            deployment_timeout=config['DEPLOYMENT_TIMEOUT']
        )

    # ==================== API clients ====================

    def _load_config(self):
        """In-cluster service account first, local kubeconfig otherwise."""
        if self._config_loaded:
            return
        from kubernetes import config as kube_config

        try:
            kube_config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
        except kube_config.ConfigException:
            kube_config.load_kube_config()
            logger.info("Loaded local kubeconfig")
        self._config_loaded = True

    @property
    def core_api(self):
        if self._core_api is None:
            from kubernetes import client
            self._load_config()
            self._core_api = client.CoreV1Api()
        return self._core_api

    @property
    def apps_api(self):
        if self._apps_api is None:
            from kubernetes import client
            self._load_config()
            self._apps_api = client.AppsV1Api()
        return self._apps_api

    @property
    def networking_api(self):
        if self._networking_api is None:
            from kubernetes import client
            self._load_config()
            self._networking_api = client.NetworkingV1Api()
        return self._networking_api

    def namespace_for(self, tenant_id: str) -> str:
        return build_namespace_name(tenant_id, self.namespace_prefix)

    def host_for(self, tenant_id: str) -> str:
        return f"{tenant_id}.{self.host_suffix}"

    # ==================== Namespace ====================

    def create_isolation_boundary(self, tenant_id: str):
        from kubernetes import client
        from kubernetes.client.rest import ApiException

        namespace = self.namespace_for(tenant_id)
        body = client.V1Namespace(
            metadata=client.V1ObjectMeta(
                name=namespace,
                labels={TENANT_LABEL: tenant_id}
            )
        )

        try:
            self.core_api.create_namespace(body=body)
            logger.info(f"Namespace created: {namespace}")
        except ApiException as e:
            if not is_conflict(e):
                raise
            logger.info(f"Namespace already exists: {namespace}")

    def teardown_isolation_boundary(self, tenant_id: str):
        from kubernetes.client.rest import ApiException

        namespace = self.namespace_for(tenant_id)
        try:
            self.core_api.delete_namespace(name=namespace)
            logger.info(f"Namespace deleted: {namespace}")
        except ApiException as e:
            if not is_not_found(e):
                raise
            logger.info(f"Namespace not found (already deleted): {namespace}")

    # ==================== Helm release ====================

    def _helm(self, args: List[str], timeout: float = None) -> subprocess.CompletedProcess:
        cmd = [self.helm_binary] + args
        return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)

    def list_releases(self, tenant_id: str) -> List[dict]:
        namespace = self.namespace_for(tenant_id)
        args = ['list', '--namespace', namespace, '--output', 'json', '--filter', f'^{tenant_id}$']
        result = self._helm(args, timeout=60)

        if result.returncode != 0:
            raise HelmCommandError([self.helm_binary] + args, result.returncode, result.stderr, tenant_id)

        return json.loads(result.stdout or '[]')

    def install_release(self, tenant_id: str, timeout: int = None):
        timeout = timeout or self.deployment_timeout
        namespace = self.namespace_for(tenant_id)

        args = [
            'install', tenant_id, self.chart,
            '--namespace', namespace,
            '--set', f'fullnameOverride={tenant_id}',
            '--wait',
            '--timeout', f'{timeout}s',
        ]
        if self.chart_repo:
            args += ['--repo', self.chart_repo]
        if self.chart_version:
            args += ['--version', self.chart_version]

        try:
            # helm enforces --timeout itself; the process is killed if it overruns
            result = self._helm(args, timeout=timeout + 30)
        except subprocess.TimeoutExpired:
            raise DeploymentTimeoutError(tenant_id, timeout)

        if result.returncode != 0:
            if helm_release_exists(result.stderr):
                logger.info(f"Helm release already installed for tenant: {tenant_id}")
                return
            if 'timed out' in (result.stderr or '').lower():
                raise DeploymentTimeoutError(tenant_id, timeout)
            raise HelmCommandError([self.helm_binary] + args, result.returncode, result.stderr, tenant_id)

        logger.info(f"Helm release installed: {tenant_id} in {namespace}")

    def uninstall_release(self, tenant_id: str):
        namespace = self.namespace_for(tenant_id)
        args = ['uninstall', tenant_id, '--namespace', namespace]

        try:
            result = self._helm(args, timeout=120)
        except subprocess.TimeoutExpired:
            raise DeploymentTimeoutError(tenant_id, 120)

        if result.returncode != 0:
            if helm_release_missing(result.stderr):
                logger.info(f"Helm release not found (already uninstalled): {tenant_id}")
                return
            raise HelmCommandError([self.helm_binary] + args, result.returncode, result.stderr, tenant_id)

        logger.info(f"Helm release uninstalled: {tenant_id}")

    # ==================== Service discovery & ingress ====================

    def resolve_service_endpoint(self, tenant_id: str) -> Tuple[str, int]:
        """
        Find the service to route the tenant host to.

        Best effort: a chart may name its service unpredictably, so prefer a
        service whose name starts with the tenant id, else the first service
        in the namespace. Without any service metadata, fall back to a service
        named after the tenant on the default port.
        """
        namespace = self.namespace_for(tenant_id)
        services = self.core_api.list_namespaced_service(namespace=namespace).items

        by_name = {s.metadata.name: s for s in services}
        name = select_by_prefix(list(by_name), tenant_id)
        if name is None:
            logger.info(f"No service found in {namespace}, using {tenant_id}:{self.default_port}")
            return tenant_id, self.default_port

        ports = by_name[name].spec.ports if by_name[name].spec else None
        port = ports[0].port if ports else self.default_port

        logger.info(f"Resolved service endpoint for {tenant_id}: {name}:{port}")
        return name, port

    def create_ingress(self, tenant_id: str):
        from kubernetes import client
        from kubernetes.client.rest import ApiException

        namespace = self.namespace_for(tenant_id)
        host = self.host_for(tenant_id)
        service_name, service_port = self.resolve_service_endpoint(tenant_id)

        body = client.V1Ingress(
            metadata=client.V1ObjectMeta(
                name=tenant_id,
                namespace=namespace,
                labels={'app': APP_LABEL, TENANT_LABEL: tenant_id},
                annotations={'nginx.ingress.kubernetes.io/rewrite-target': '/'}
            ),
            spec=client.V1IngressSpec(
                ingress_class_name=self.ingress_class,
                rules=[
                    client.V1IngressRule(
                        host=host,
                        http=client.V1HTTPIngressRuleValue(
                            paths=[
                                client.V1HTTPIngressPath(
                                    path='/',
                                    path_type='Prefix',
                                    backend=client.V1IngressBackend(
                                        service=client.V1IngressServiceBackend(
                                            name=service_name,
                                            port=client.V1ServiceBackendPort(number=service_port)
                                        )
                                    )
                                )
                            ]
                        )
                    )
                ]
            )
        )

        try:
            self.networking_api.create_namespaced_ingress(namespace=namespace, body=body)
            logger.info(f"Ingress created: {host} -> {service_name}:{service_port} in {namespace}")
        except ApiException as e:
            if not is_conflict(e):
                raise
            logger.info(f"Ingress already exists for tenant: {tenant_id}")

    def delete_ingress(self, tenant_id: str):
        from kubernetes.client.rest import ApiException

        namespace = self.namespace_for(tenant_id)
        try:
            self.networking_api.delete_namespaced_ingress(name=tenant_id, namespace=namespace)
            logger.info(f"Ingress deleted for tenant: {tenant_id}")
        except ApiException as e:
            if not is_not_found(e):
                raise
            logger.info(f"Ingress not found for tenant: {tenant_id}")

    # ==================== Deployment lifecycle ====================

    def trigger_deployment(self, tenant_id: str, timeout: int = None):
        """Install the Helm release (blocking until rolled out) and route its host."""
        if self.list_releases(tenant_id):
            logger.info(f"Helm release already installed for tenant: {tenant_id}")
        else:
            self.install_release(tenant_id, timeout=timeout)
        self.create_ingress(tenant_id)

    def teardown_deployment(self, tenant_id: str):
        self.uninstall_release(tenant_id)
        self.delete_ingress(tenant_id)

    def query_readiness(self, tenant_id: str) -> DeploymentStatus:
        from kubernetes.client.rest import ApiException

        namespace = self.namespace_for(tenant_id)
        try:
            deployments = self.apps_api.list_namespaced_deployment(namespace=namespace).items
        except ApiException as e:
            if is_not_found(e):
                return DeploymentStatus.ERROR
            raise

        by_name = {d.metadata.name: d for d in deployments}
        name = select_by_prefix(list(by_name), tenant_id)
        if name is None:
            return DeploymentStatus.ERROR

        deployment = by_name[name]
        desired = (deployment.spec.replicas if deployment.spec else None) or 0
        ready = (deployment.status.ready_replicas if deployment.status else None) or 0
        return readiness_from_replicas(ready, desired)


def readiness_from_replicas(ready: int, desired: int) -> DeploymentStatus:
    if ready == desired and desired > 0:
        return DeploymentStatus.RUNNING
    if 0 < ready < desired:
        return DeploymentStatus.CREATING
    return DeploymentStatus.STOPPED
