import logging
import os
import time
from datetime import datetime

import redis
from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException

from .config import config
from .errors import TenantError
from .kubernetes_gateway import KubernetesGateway
from .tenant_orchestrator import TenantOrchestrator
from .tenant_registry import TenantRegistry
from .validation import validate_create_request

logger = logging.getLogger(__name__)


def create_app(config_name: str = None, gateway=None, redis_client=None) -> Flask:
    """Application factory for the tenant provisioner API."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    if redis_client is None and app.config['REDIS_URL']:
        redis_client = redis.from_url(
            app.config['REDIS_URL'],
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )

    if gateway is None:
        gateway = KubernetesGateway.from_config(app.config)

    # Store services on app for access in routes
    app.redis = redis_client
    app.orchestrator = TenantOrchestrator(
        gateway=gateway,
        registry=TenantRegistry(),
        namespace_prefix=app.config['NAMESPACE_PREFIX'],
        deployment_timeout=app.config['DEPLOYMENT_TIMEOUT'],
        max_workers=app.config['DEPLOYMENT_WORKERS'],
        redis_client=redis_client,
        events_channel=app.config['EVENTS_CHANNEL']
    )
    app.started_at = time.time()

    register_error_handlers(app)
    register_api_routes(app)

    return app


def _error_body(status: int, error: str, message: str) -> dict:
    return {
        'statusCode': status,
        'error': error,
        'message': message,
        'path': request.path,
        'method': request.method,
        'timestamp': datetime.utcnow().isoformat() + 'Z'
    }


def register_error_handlers(app: Flask):
    """Render errors as JSON, mapping tenant errors to their HTTP status."""

    @app.errorhandler(TenantError)
    def handle_tenant_error(e: TenantError):
        if e.http_status >= 500:
            logger.exception(f"{request.method} {request.path} failed: {e}")
        return jsonify(_error_body(e.http_status, type(e).__name__, e.message)), e.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify(_error_body(e.code, e.name, e.description)), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.exception(f"{request.method} {request.path} failed: {e}")
        return jsonify(_error_body(500, 'Internal Server Error', 'Internal server error')), 500


def register_api_routes(app: Flask):
    """Register API routes."""

    # ==================== Tenants ====================

    @app.route('/tenants', methods=['POST'])
    def api_create_tenant():
        """Create a tenant and start provisioning its deployment."""
        tenant_id, name = validate_create_request(
            request.get_json(silent=True),
            app.config['NAMESPACE_PREFIX']
        )
        tenant = app.orchestrator.create_tenant(tenant_id, name)
        return jsonify(tenant.to_dict()), 201

    @app.route('/tenants', methods=['GET'])
    def api_list_tenants():
        """List tenants in creation order."""
        return jsonify([t.to_dict() for t in app.orchestrator.list_tenants()])

    @app.route('/tenants/<tenant_id>', methods=['GET'])
    def api_get_tenant(tenant_id: str):
        """Get a tenant with a fresh deployment status."""
        tenant = app.orchestrator.get_tenant(tenant_id)
        if not tenant:
            return jsonify(_error_body(404, 'Not Found', f'Tenant with ID {tenant_id} not found')), 404
        return jsonify(tenant.to_dict())

    @app.route('/tenants/<tenant_id>', methods=['DELETE'])
    def api_delete_tenant(tenant_id: str):
        """Tear down a tenant's deployment and namespace."""
        app.orchestrator.delete_tenant(tenant_id)
        return '', 204

    # ==================== Health Check ====================

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        if app.redis is None:
            redis_state = 'disabled'
        else:
            try:
                app.redis.ping()
                redis_state = 'connected'
            except redis.RedisError:
                redis_state = 'disconnected'

        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'uptime': int(time.time() - app.started_at),
            'version': app.config['APP_VERSION'],
            'redis': redis_state
        })
