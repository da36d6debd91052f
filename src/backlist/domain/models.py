from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
SchemaType = Literal["String", "Number", "Boolean"]
CallKind = Literal["fetch", "client"]

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE")
BODY_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH"})


class _Model(BaseModel):
    # snake_case in Python, camelCase on the wire (contracts.json)
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SchemaField(_Model):
    name: str
    inferred_type: SchemaType = "String"


class EndpointDescriptor(_Model):
    """
    One backend route derived from frontend code.

    `route` is what downstream routers bind to (`/api/users/:id`);
    `raw_path` keeps the reconstructed URL text (`/api/users/{id}?page=1`).
    """

    raw_path: str
    route: str
    method: HttpMethod = "GET"
    controller_name: str = "Default"
    action_name: str = "getAction"

    path_params: list[str] = Field(default_factory=list)
    query_params: list[str] = Field(default_factory=list)
    request_body: Optional[dict[str, SchemaField]] = None

    source_file: str = ""
    source_line: int = 0
    kind: CallKind = "client"
    client: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.method}:{self.route}"


class ContractsDocument(_Model):
    schema_version: int
    generated_at: datetime
    root: str
    endpoints: list[EndpointDescriptor] = Field(default_factory=list)
