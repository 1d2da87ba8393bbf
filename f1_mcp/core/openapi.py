"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- A client-id header security scheme, required on the MCP endpoint and
  exempted on health checks

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI


def apply_openapi_customizations(app: FastAPI, *, client_id_header: str = "X-Client-ID") -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ClientId",
            {
                "type": "apiKey",
                "in": "header",
                "name": client_id_header,
                "description": "Opaque client identifier used for per-client rate limiting.",
            },
        )

        schema.setdefault("security", [{"ClientId": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "MCP",
                "description": "Model Context Protocol JSON-RPC endpoint exposing F1 data tools.",
            },
            {
                "name": "Health",
                "description": "Liveness and store size checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path.endswith("/health"):
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
