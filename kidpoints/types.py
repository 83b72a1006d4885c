"""Closed value sets shared by schemas, services and routers."""

from enum import StrEnum


class Child(StrEnum):
    ADRIAN = "adrian"
    EMMA = "emma"

    @property
    def sibling(self) -> "Child":
        return Child.EMMA if self is Child.ADRIAN else Child.ADRIAN


class Role(StrEnum):
    ADMIN = "admin"
    VIEWER = "viewer"
