class TenantError(Exception):
    """Base class for tenant lifecycle errors."""
    http_status = 500

    def __init__(self, message: str, tenant_id: str = None):
        self.tenant_id = tenant_id
        self.message = message
        super().__init__(message)


class TenantValidationError(TenantError):
    http_status = 400


class ForbiddenTenantNameError(TenantValidationError):
    def __init__(self, tenant_id: str, reserved: tuple):
        self.reserved = reserved
        super().__init__(
            f'Tenant ID "{tenant_id}" is forbidden. Reserved tenant names: {", ".join(reserved)}',
            tenant_id
        )


class TenantAlreadyExistsError(TenantError):
    http_status = 409

    def __init__(self, tenant_id: str):
        super().__init__(f'Tenant with ID "{tenant_id}" already exists', tenant_id)


class TenantNotFoundError(TenantError):
    http_status = 404

    def __init__(self, tenant_id: str):
        super().__init__(f'Tenant with ID "{tenant_id}" not found', tenant_id)


class PlatformError(TenantError):
    """A platform or tool failure that is not a benign exists/absent condition."""


class HelmCommandError(PlatformError):
    def __init__(self, command: list, returncode: int, stderr: str, tenant_id: str = None):
        self.command = command
        self.returncode = returncode
        self.stderr = (stderr or '').strip()
        super().__init__(
            f"helm {command[1] if len(command) > 1 else ''} exited with code {returncode}: {self.stderr}",
            tenant_id
        )


class DeploymentTimeoutError(PlatformError):
    def __init__(self, tenant_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Deployment for tenant {tenant_id} did not finish within {timeout}s",
            tenant_id
        )
