"""
Tenant Provisioner - control plane for per-tenant workloads

Responsibilities:
- Tenant registry (create/list/get/delete)
- Namespace, Helm release and ingress provisioning on Kubernetes
- Deployment status reconciliation on read
- Lifecycle event publishing (optional, Redis)
"""
