"""
Types for the wiki page store.
"""

import datetime
from dataclasses import dataclass
from typing import Any, Self


def format_date(value: datetime.datetime | None) -> str | None:
    """
    Convert a timestamp to its stored / wire representation.
    """
    if value is None:
        return None
    return value.isoformat()


def parse_date(value: str | datetime.datetime | None) -> datetime.datetime | None:
    """
    Parse a stored / wire timestamp. Some drivers already hand back datetimes.
    """
    if value is None or isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromisoformat(value)


@dataclass
class Page:
    """
    A wiki page, with its markdown content and lifecycle dates.
    """

    id: str
    name: str
    content: str = ""
    creation_date: datetime.datetime | None = None
    update_date: datetime.datetime | None = None
    delete_date: datetime.datetime | None = None

    @property
    def is_deleted(self) -> bool:
        """
        A page is soft-deleted once it has a delete date.
        """
        return self.delete_date is not None

    @classmethod
    def from_row(cls, row: tuple) -> Self:
        """
        Load a page from a `get-page-by-*` row, in column order.
        """
        return cls(
            id=row[0],
            name=row[1],
            content=row[2] or "",
            creation_date=parse_date(row[3]),
            update_date=parse_date(row[4]),
            delete_date=parse_date(row[5]),
        )

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """
        Load a page from a dictionary.
        """
        return cls(
            id=data["id"],
            name=data["name"],
            content=data.get("content") or "",
            creation_date=parse_date(data.get("creation_date")),
            update_date=parse_date(data.get("update_date")),
            delete_date=parse_date(data.get("delete_date")),
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the page to a JSON-serializable dictionary.
        """
        return {
            "id": self.id,
            "name": self.name,
            "content": self.content,
            "creation_date": format_date(self.creation_date),
            "update_date": format_date(self.update_date),
            "delete_date": format_date(self.delete_date),
        }


@dataclass
class PageInfo:
    """
    A page listing entry, just the id and the name.
    """

    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """
        Load a page info from a dictionary.
        """
        return cls(id=data["id"], name=data["name"])

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the page info to a JSON-serializable dictionary.
        """
        return {"id": self.id, "name": self.name}


def page_lookup_to_dict(page: Page | None) -> dict[str, Any]:
    """
    Wire form of a lookup: `{"found": false}` or the page with `found: true`.
    """
    if page is None:
        return {"found": False}
    return {"found": True, **page.to_dict()}


def page_lookup_from_dict(data: dict[str, Any]) -> Page | None:
    """
    Inverse of `page_lookup_to_dict`.
    """
    if not data.get("found"):
        return None
    return Page.from_dict(data)
