from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from src.base.middleware.auth_middleware import WHITELIST


class OpenAPIConfig:
    """Declares the bearer token scheme enforced by AuthMiddleware in the OpenAPI schema."""

    SCHEME_NAME = "bearerAuth"

    def get_swagger_ui_parameters(self) -> dict[str, Any]:
        return {"persistAuthorization": True}

    def create_custom_openapi_schema(self, app: FastAPI) -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )

        components = openapi_schema.setdefault("components", {})
        components["securitySchemes"] = {
            self.SCHEME_NAME: {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
        }
        openapi_schema["security"] = [{self.SCHEME_NAME: []}]

        # Whitelisted paths are reachable without a token
        for path, path_info in openapi_schema.get("paths", {}).items():
            if path not in WHITELIST:
                continue
            for method_info in path_info.values():
                if isinstance(method_info, dict):
                    method_info["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema


def setup_openapi(app: FastAPI) -> None:
    """Setup OpenAPI configuration for the FastAPI app"""
    config = OpenAPIConfig()

    def custom_openapi():
        return config.create_custom_openapi_schema(app)

    app.swagger_ui_parameters = config.get_swagger_ui_parameters()
    app.openapi = custom_openapi
