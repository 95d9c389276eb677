import os


class Config:
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')
    PORT = int(os.getenv('PORT', '3000'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Tenant namespaces
    NAMESPACE_PREFIX = os.getenv('NAMESPACE_PREFIX') or 'tenant-'

    # Ingress routing: <tenant-id>.<HOST_SUFFIX>
    HOST_SUFFIX = os.getenv('HOST_SUFFIX', 'localhost')
    INGRESS_CLASS = os.getenv('INGRESS_CLASS', 'nginx')
    SERVICE_DEFAULT_PORT = int(os.getenv('SERVICE_DEFAULT_PORT', '80'))

    # Helm release template
    HELM_BINARY = os.getenv('HELM_BINARY', 'helm')
    HELM_CHART = os.getenv('HELM_CHART', 'echo-server')
    HELM_REPO = os.getenv('HELM_REPO', 'https://ealenn.github.io/charts')
    HELM_CHART_VERSION = os.getenv('HELM_CHART_VERSION', '')

    # Detached rollouts
    DEPLOYMENT_TIMEOUT = int(os.getenv('DEPLOYMENT_TIMEOUT', '300'))
    DEPLOYMENT_WORKERS = int(os.getenv('DEPLOYMENT_WORKERS', '4'))

    # Lifecycle events (disabled when REDIS_URL is empty)
    REDIS_URL = os.getenv('REDIS_URL', '')
    EVENTS_CHANNEL = os.getenv('EVENTS_CHANNEL', 'tenants:events')


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    DEBUG = False
    TESTING = True
    NAMESPACE_PREFIX = 'tenant-'
    REDIS_URL = ''
    DEPLOYMENT_TIMEOUT = 5


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
