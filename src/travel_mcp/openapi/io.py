from __future__ import annotations

import json
from pathlib import Path
from typing import Union

import httpx
import yaml

from travel_mcp.errors import OpenAPINetworkError, OpenAPIParseError, OpenAPIValidationError

from .models import OpenAPIDocument

__all__ = ["load_openapi", "validate_document"]


def load_openapi(source: Union[str, Path, dict]) -> OpenAPIDocument:
    """Load and shape-check an OpenAPI document.

    Supports:
    - Dict: validated and returned as-is
    - URL (http/https): fetched with httpx
    - Local file path: JSON or YAML
    - Raw JSON/YAML string

    Example:
        doc = load_openapi("openapi/openapi-client.json")
        doc = load_openapi("http://localhost:3000/openapi.json")

    Raises:
        OpenAPIParseError: the text is neither JSON nor YAML.
        OpenAPINetworkError: the URL could not be fetched.
        OpenAPIValidationError: the document has no ``paths`` mapping.
    """
    if isinstance(source, dict):
        return validate_document(source)

    source_str = str(source)

    if source_str.startswith(("http://", "https://")):
        return validate_document(_fetch_openapi_url(source_str))

    p = Path(source_str)
    if p.exists() and p.is_file():
        return validate_document(_load_openapi_file(p))

    # A single line that is not JSON can only have been meant as a path.
    if isinstance(source, Path) or ("\n" not in source_str and not source_str.lstrip().startswith("{")):
        raise OpenAPIParseError(
            f"OpenAPI document not found: {source_str}",
            errors=[f"no such file: {source_str}"],
        )
    return validate_document(_parse_openapi_string(source_str))


def validate_document(doc: object) -> OpenAPIDocument:
    if not isinstance(doc, dict):
        raise OpenAPIValidationError(
            f"OpenAPI document must be a mapping, got {type(doc).__name__}",
            missing_fields=["paths"],
        )
    paths = doc.get("paths")
    if paths is None:
        raise OpenAPIValidationError("OpenAPI document has no 'paths'", missing_fields=["paths"])
    if not isinstance(paths, dict):
        raise OpenAPIValidationError("OpenAPI 'paths' must be a mapping", missing_fields=["paths"])
    return doc


def _fetch_openapi_url(url: str) -> object:
    try:
        with httpx.Client(timeout=30.0, follow_redirects=True) as client:
            resp = client.get(url)
            resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise OpenAPINetworkError(
            f"Failed to fetch OpenAPI document: HTTP {e.response.status_code}",
            url=url,
            status_code=e.response.status_code,
        ) from e
    except httpx.HTTPError as e:
        raise OpenAPINetworkError(f"Failed to fetch OpenAPI document: {e}", url=url) from e

    content_type = resp.headers.get("content-type", "")
    if "json" in content_type or url.endswith(".json"):
        try:
            return resp.json()
        except ValueError as e:
            raise OpenAPIParseError("Invalid JSON in OpenAPI document", errors=[str(e)]) from e
    return _parse_openapi_string(resp.text)


def _load_openapi_file(path: Path) -> object:
    text = path.read_text(encoding="utf-8")

    if path.suffix == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise OpenAPIParseError(f"Invalid JSON in {path}", errors=[str(e)]) from e
    return _parse_openapi_string(text)


def _parse_openapi_string(text: str) -> object:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise OpenAPIParseError("Could not parse OpenAPI document", errors=[str(e)]) from e
