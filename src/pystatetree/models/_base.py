"""Base model for pystatetree records and descriptors.

Every model inherits from :class:`StoreBaseModel` which provides:

* ``frozen=True`` so records handed to subscribers cannot be edited
  in place by one subscriber and observed by the next.
* ``extra="forbid"`` so a misspelled descriptor key (``mutation``
  instead of ``mutations``) fails loudly instead of being dropped.
* ``arbitrary_types_allowed`` because handlers, payloads and state are
  arbitrary user objects.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StoreBaseModel(BaseModel):
    """Base for pystatetree models."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )
