"""OpenAPI schema fragment -> tool input schema.

:func:`translate` turns a JSON-Schema-like fragment into a :data:`SchemaNode`,
a small tagged union of frozen pydantic models that carries no behaviour.
:func:`to_json_schema` renders a node back into the JSON Schema advertised
to MCP clients as a tool's ``inputSchema``.

Translation is lenient. Anything the translator does not understand (a
missing or unknown ``type``, a non-mapping fragment, an unresolvable or
cyclic ``$ref``) becomes :class:`AnyNode` instead of an error. Objects
accept unknown fields: untyped when ``additionalProperties`` is absent or a
boolean, typed when it is a schema.

Example:
    >>> node = translate({"type": "object", "required": ["a"],
    ...                   "properties": {"a": {"type": "string"}}})
    >>> node.fields["a"].required
    True
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from travel_mcp.logging import get_logger

__all__ = [
    "AnyNode",
    "PrimitiveNode",
    "ArrayNode",
    "ObjectField",
    "ObjectNode",
    "EnumNode",
    "SchemaNode",
    "MAX_DEPTH",
    "translate",
    "resolve_ref",
    "to_json_schema",
]

logger = get_logger("openapi.schema")

MAX_DEPTH = 8


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: Optional[str] = None
    nullable: bool = False


class AnyNode(_Node):
    kind: Literal["any"] = "any"


class PrimitiveNode(_Node):
    kind: Literal["primitive"] = "primitive"
    primitive: Literal["string", "number", "boolean"]


class ArrayNode(_Node):
    kind: Literal["array"] = "array"
    items: "SchemaNode" = Field(default_factory=AnyNode)


class ObjectField(BaseModel):
    model_config = ConfigDict(frozen=True)

    node: "SchemaNode"
    required: bool = False


class ObjectNode(_Node):
    kind: Literal["object"] = "object"
    fields: Dict[str, ObjectField] = Field(default_factory=dict)
    # passthrough: unknown fields accepted as-is; typed: must match `extra`
    unknown: Literal["passthrough", "typed", "reject"] = "passthrough"
    extra: Optional["SchemaNode"] = None


class EnumNode(_Node):
    kind: Literal["enum"] = "enum"
    values: Tuple[Any, ...]


SchemaNode = Annotated[
    Union[AnyNode, PrimitiveNode, ArrayNode, ObjectNode, EnumNode],
    Field(discriminator="kind"),
]

ArrayNode.model_rebuild()
ObjectField.model_rebuild()
ObjectNode.model_rebuild()


_PRIMITIVES = {
    "string": "string",
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
}


def resolve_ref(ref: str, document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Follow a local JSON pointer (``#/components/schemas/X``) into ``document``."""
    if not document or not ref.startswith("#/"):
        return None
    node: Any = document
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, dict) else None


def translate(fragment: Any, document: Optional[Dict[str, Any]] = None) -> SchemaNode:
    """Translate an OpenAPI schema fragment into a :data:`SchemaNode`.

    Args:
        fragment: The schema fragment. Non-mappings degrade to :class:`AnyNode`.
        document: The enclosing OpenAPI document, used to resolve local ``$ref``s.
    """
    return _translate(fragment, document, depth=0, refs=())


def _translate(
    fragment: Any,
    document: Optional[Dict[str, Any]],
    *,
    depth: int,
    refs: Tuple[str, ...],
) -> SchemaNode:
    if not isinstance(fragment, dict):
        if fragment is not None and not isinstance(fragment, bool):
            logger.debug("Schema fragment is not a mapping; accepting anything", got=type(fragment).__name__)
        return AnyNode()

    description = fragment.get("description") if isinstance(fragment.get("description"), str) else None

    if depth > MAX_DEPTH:
        logger.debug("Schema nesting exceeds max depth; accepting anything", depth=depth)
        return AnyNode(description=description)

    ref = fragment.get("$ref")
    if isinstance(ref, str):
        target = None if ref in refs else resolve_ref(ref, document)
        if target is None:
            logger.debug("Unresolved or cyclic $ref; accepting anything", ref=ref)
            return AnyNode(description=description)
        merged = {**target, **{k: v for k, v in fragment.items() if k != "$ref"}}
        return _translate(merged, document, depth=depth + 1, refs=refs + (ref,))

    nullable = fragment.get("nullable") is True
    type_ = fragment.get("type")
    if isinstance(type_, list):
        # OpenAPI 3.1 style: ["string", "null"]
        if "null" in type_:
            nullable = True
        rest = [t for t in type_ if t != "null"]
        type_ = rest[0] if len(rest) == 1 else None

    common = {"description": description, "nullable": nullable}
    node: SchemaNode

    if type_ in _PRIMITIVES:
        node = PrimitiveNode(primitive=_PRIMITIVES[type_], **common)
    elif type_ == "array":
        items = fragment.get("items")
        item_node = (
            _translate(items, document, depth=depth + 1, refs=refs) if items else AnyNode()
        )
        node = ArrayNode(items=item_node, **common)
    elif type_ == "object":
        node = _translate_object(fragment, document, depth=depth, refs=refs, common=common)
    else:
        node = AnyNode(**common)

    enum = fragment.get("enum")
    if isinstance(enum, list) and enum:
        node = EnumNode(values=tuple(enum), **common)

    return node


def _translate_object(
    fragment: Dict[str, Any],
    document: Optional[Dict[str, Any]],
    *,
    depth: int,
    refs: Tuple[str, ...],
    common: Dict[str, Any],
) -> ObjectNode:
    raw_required = fragment.get("required")
    required = {r for r in raw_required if isinstance(r, str)} if isinstance(raw_required, list) else set()

    properties = fragment.get("properties")
    fields: Dict[str, ObjectField] = {}
    if isinstance(properties, dict):
        for name, sub in properties.items():
            fields[str(name)] = ObjectField(
                node=_translate(sub, document, depth=depth + 1, refs=refs),
                required=name in required,
            )

    additional = fragment.get("additionalProperties")
    if isinstance(additional, dict) and additional:
        extra = _translate(additional, document, depth=depth + 1, refs=refs)
        return ObjectNode(fields=fields, unknown="typed", extra=extra, **common)
    return ObjectNode(fields=fields, unknown="passthrough", **common)


# ---------------- rendering ----------------

def to_json_schema(node: SchemaNode) -> Dict[str, Any]:
    """Render a node as a JSON Schema dict."""
    out: Dict[str, Any]
    if isinstance(node, PrimitiveNode):
        out = {"type": node.primitive}
    elif isinstance(node, ArrayNode):
        out = {"type": "array", "items": to_json_schema(node.items)}
    elif isinstance(node, ObjectNode):
        out = {
            "type": "object",
            "properties": {name: to_json_schema(f.node) for name, f in node.fields.items()},
        }
        required = [name for name, f in node.fields.items() if f.required]
        if required:
            out["required"] = required
        if node.unknown == "typed" and node.extra is not None:
            out["additionalProperties"] = to_json_schema(node.extra)
        else:
            out["additionalProperties"] = node.unknown == "passthrough"
    elif isinstance(node, EnumNode):
        out = {"enum": list(node.values)}
    else:
        out = {}

    if node.nullable:
        if "type" in out:
            out["type"] = [out["type"], "null"]
        elif "enum" in out and None not in out["enum"]:
            out["enum"].append(None)
    if node.description:
        out["description"] = node.description
    return out
