from encrypt_content.exceptions import DecryptionError
from encrypt_content.models.flow import FlowOutcome, Relationship


def test_success() -> None:
    outcome = FlowOutcome.success(b"ciphertext")

    assert outcome.is_success
    assert outcome.relationship is Relationship.SUCCESS
    assert outcome.content == b"ciphertext"
    assert outcome.error is None


def test_failure_keeps_original_content() -> None:
    error = DecryptionError("Bad decrypt")

    outcome = FlowOutcome.failure(b"original", error)

    assert not outcome.is_success
    assert outcome.relationship.value == "failure"
    assert outcome.content == b"original"
    assert outcome.error is error
