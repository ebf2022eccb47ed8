"""
Acting identity attached to every written record.

Authentication happens upstream; the engine only receives the result.
"""

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class IdentityContext:
    org_id: uuid.UUID
    user_id: str
    display_name: str

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("IdentityContext requires a user_id")
