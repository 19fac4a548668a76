"""
Location Models — Identity and resolved paths of a location server.
"""

from __future__ import annotations

from typing import Iterator, Tuple

from pydantic import BaseModel, ConfigDict


class AddressSet(BaseModel):
    """The four paths a location run works on."""

    model_config = ConfigDict(frozen=True)

    source_share: str
    source_profile: str
    destination_share: str
    destination_profile: str

    def items(self) -> Iterator[Tuple[str, str]]:
        """Yield (name, path) pairs in a fixed order."""
        yield "source_share", self.source_share
        yield "source_profile", self.source_profile
        yield "destination_share", self.destination_share
        yield "destination_profile", self.destination_profile


class LocationIdentity(BaseModel):
    """A location derived from a server hostname."""

    model_config = ConfigDict(frozen=True)

    hostname: str
    code: str
    addresses: AddressSet

    @property
    def tag(self) -> str:
        return f"Location{self.code}"
