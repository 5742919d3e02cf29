"""Models for the blog example."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel

from modelmeta.resources.markers import Meta, Permissions, RelationTag


class Settings(BaseModel):
    theme: Annotated[str, Meta("required;max=20")] = "light"
    page_size: Annotated[int, Meta("min=5;max=100")] = 20


class User(BaseModel):
    id: Annotated[int, Meta("readOnly")]
    name: Annotated[str, Meta("required;searchable;min=3;max=50;label=Full name")]
    email: Annotated[str, Meta("required;unique;pattern=^[^@]+@[^@]+$")]
    salary: Annotated[int | None, Meta("min=0;hidden"), Permissions(read=["hr"])] = None
    settings: Annotated[Settings | None, Meta("json")] = None


class Tag(BaseModel):
    id: int
    label: Annotated[str, Meta("required;searchable")]


class Post(BaseModel):
    id: Annotated[int, Meta("readOnly")]
    title: Annotated[str, Meta("required;searchable;min=3;max=120")]
    body: Annotated[str, Meta("!filterable;!sortable;category=richtext")] = ""
    author_id: Annotated[int | None, Meta("label=Author")] = None
    author: Annotated[
        User | None,
        RelationTag("resource=users;type=many-to-one;field=author_id;reference=id;required"),
    ] = None
    tags: Annotated[
        list[Tag],
        RelationTag(
            "resource=tags;type=many-to-many;reference=id;pivot_table=post_tags;max_items=5"
        ),
    ] = []
