"""Team member records at the storage boundary.

Older devices wrote members as a bare name string; current devices write
``{"name", "deviceId", "photo"}`` objects. Both shapes are a tagged variant
here and always come out as a canonical ``TeamMember``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class TeamMember(BaseModel):
    """Canonical member record."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=64)
    device_id: str = Field("", alias="deviceId", max_length=64)
    photo: str | None = None


def _member_shape(value: Any) -> str:  # noqa: ANN401
    return "legacy" if isinstance(value, str) else "profile"


StoredMember = Annotated[
    Union[  # noqa: UP007
        Annotated[str, Tag("legacy")],
        Annotated[TeamMember, Tag("profile")],
    ],
    Discriminator(_member_shape),
]

_stored_member = TypeAdapter(StoredMember)


def load_member(raw: Any) -> TeamMember:  # noqa: ANN401
    """Resolve one stored entry. Legacy names get an empty device id."""
    value = _stored_member.validate_python(raw)
    if isinstance(value, str):
        return TeamMember(name=value)
    return value


def split_members(raw: Iterable[Any] | None) -> tuple[list[TeamMember], list[Any]]:
    """Resolve a stored members array into readable members and the raw entries that are not.

    Writers pass the unreadable entries back to ``dump_members`` so that a
    membership change never deletes a record this version cannot parse.
    """
    members: list[TeamMember] = []
    unreadable: list[Any] = []
    for entry in raw or ():
        try:
            members.append(load_member(entry))
        except ValidationError:
            logger.warning("Unreadable team member entry: %r", entry)
            unreadable.append(entry)
    return members, unreadable


def load_members(raw: Iterable[Any] | None) -> list[TeamMember]:
    """Resolve a stored members array for reading, skipping entries that cannot be read."""
    return split_members(raw)[0]


def dump_members(members: Iterable[TeamMember], unreadable: Iterable[Any] = ()) -> list[Any]:
    """Serialize members in the canonical stored shape, raw ``unreadable`` entries kept at the end."""
    return [*(m.model_dump(by_alias=True) for m in members), *unreadable]


def find_member(members: list[TeamMember], device_id: str) -> int | None:
    """Index of the member with ``device_id``, or None."""
    if not device_id:
        return None
    for idx, member in enumerate(members):
        if member.device_id == device_id:
            return idx
    return None
