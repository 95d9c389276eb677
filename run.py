#!/usr/bin/env python3
"""
Entry point for the Tenant Provisioner API.

Usage:
    python run.py

Environment Variables:
    FLASK_ENV: development or production (default: development)
    PORT: Port to run on (default: 3000)
    NAMESPACE_PREFIX: Prefix for tenant namespaces (default: tenant-)
    LOG_LEVEL: Logging level (default: INFO)
"""
import logging
import os


def run_api():
    """Run the tenant provisioner API."""
    from tenancy.app import create_app

    app = create_app()
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    logger = logging.getLogger('tenancy')

    port = app.config['PORT']
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    logger.info(f"Tenant Provisioner API running on http://0.0.0.0:{port}")
    logger.info("Available endpoints: GET /health, POST /tenants, GET /tenants, "
                "GET /tenants/<id>, DELETE /tenants/<id>")
    try:
        # The reloader would start a second orchestrator with its own registry
        app.run(host='0.0.0.0', port=port, debug=debug, use_reloader=False, threaded=True)
    finally:
        app.orchestrator.shutdown(wait_for_rollouts=False)


if __name__ == '__main__':
    run_api()
