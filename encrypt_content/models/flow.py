"""
Outcome of processing one piece of content.
"""

from dataclasses import dataclass
from enum import Enum

from encrypt_content.exceptions import EncryptContentError


class Relationship(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, kw_only=True)
class FlowOutcome:
    """
    Attributes:
        relationship: Where the content is routed.
        content: Output bytes on success, the untouched input on failure.
        error: The failure cause, None on success.
    """

    relationship: Relationship
    content: bytes
    error: EncryptContentError | None = None

    @property
    def is_success(self) -> bool:
        return self.relationship is Relationship.SUCCESS

    @classmethod
    def success(cls, content: bytes) -> "FlowOutcome":
        return cls(relationship=Relationship.SUCCESS, content=content)

    @classmethod
    def failure(cls, original: bytes, error: EncryptContentError) -> "FlowOutcome":
        return cls(relationship=Relationship.FAILURE, content=original, error=error)
