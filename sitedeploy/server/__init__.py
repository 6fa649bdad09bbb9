"""
sitedeploy Server Package.

This package contains the web server implementation for sitedeploy.
It includes the API definition, configuration, request/response schemas and
the dependency wiring between the HTTP layer and the build pipeline.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Core configurations and constants.
    exception_handlers: Mapping of domain errors to HTTP responses.
    middleware: Request timing and monitoring.
    services: Dependency providers for routers.
"""
