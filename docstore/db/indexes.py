"""
Index descriptors for document collections.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..exceptions import ValidationError


@dataclass(frozen=True)
class Index:
    """
    A persistent index over one or more payload fields.

    Field names are payload paths; they are stored under the ``doc``
    wrapper, so ``Index(("name",))`` indexes ``doc.name``.
    """
    fields: Tuple[str, ...]
    unique: bool = False
    sparse: bool = False
    name: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.fields, str):
            object.__setattr__(self, 'fields', (self.fields,))
        else:
            object.__setattr__(self, 'fields', tuple(self.fields))
        if not self.fields:
            raise ValidationError("Index requires at least one field")

    def to_payload(self, payload_field: str = 'doc') -> Dict[str, Any]:
        """Body for ArangoDB's index creation endpoint."""
        payload: Dict[str, Any] = {
            "type": "persistent",
            "fields": [f"{payload_field}.{f}" for f in self.fields],
            "unique": self.unique,
            "sparse": self.sparse,
        }
        if self.name:
            payload["name"] = self.name
        return payload
