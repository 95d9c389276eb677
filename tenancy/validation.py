"""
Validation of tenant creation requests.

Runs at the HTTP boundary, before the orchestrator or the platform is touched.
"""
import re
from typing import Tuple

from .errors import ForbiddenTenantNameError, TenantValidationError


FORBIDDEN_TENANT_NAMES = (
    'api',
    'admin',
    'system',
    'root',
    'localhost',
    'www',
    'mail',
    'ftp',
    'test',
)

# Ids name the namespace, the Helm release and the chart's Service, so they
# must be DNS-1035 labels: lowercase alphanumerics and '-', leading letter
TENANT_ID_PATTERN = re.compile(r'[a-z]([-a-z0-9]*[a-z0-9])?')
MAX_NAMESPACE_LENGTH = 63
MAX_RELEASE_NAME_LENGTH = 53


def is_forbidden_tenant_name(name: str) -> bool:
    return name.lower() in FORBIDDEN_TENANT_NAMES


def validate_tenant_id(tenant_id, namespace_prefix: str = 'tenant-') -> str:
    if not isinstance(tenant_id, str) or not tenant_id:
        raise TenantValidationError('Tenant id is required and must be a string')

    if is_forbidden_tenant_name(tenant_id):
        raise ForbiddenTenantNameError(tenant_id, FORBIDDEN_TENANT_NAMES)

    if not TENANT_ID_PATTERN.fullmatch(tenant_id):
        raise TenantValidationError(
            f'Tenant id "{tenant_id}" must consist of lowercase letters, digits and '
            f"'-', start with a letter and end with a letter or digit",
            tenant_id
        )

    max_length = min(MAX_RELEASE_NAME_LENGTH, MAX_NAMESPACE_LENGTH - len(namespace_prefix))
    if len(tenant_id) > max_length:
        raise TenantValidationError(
            f'Tenant id "{tenant_id}" is too long: the limit is {max_length} characters',
            tenant_id
        )

    return tenant_id


def validate_create_request(data, namespace_prefix: str = 'tenant-') -> Tuple[str, str]:
    """Return (id, name) from a create request body or raise TenantValidationError."""
    if not isinstance(data, dict):
        raise TenantValidationError('Request body must be a JSON object')

    tenant_id = validate_tenant_id(data.get('id'), namespace_prefix)

    name = data.get('name')
    if not isinstance(name, str) or not name.strip():
        raise TenantValidationError('Tenant name is required', tenant_id)

    return tenant_id, name
