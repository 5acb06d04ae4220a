"""
Hashing helpers for the notification log and the document pointer format.
Uses hashlib for SHA-256; document pointers are only checked for shape.
"""
import hashlib
import json
from typing import Optional

from .config import DOC_HASH_LENGTH, DOC_HASH_PREFIX
from .errors import InvalidDocumentHash

GENESIS = "GENESIS"


def sha256(data: str) -> str:
    """Compute SHA-256 hash of a string."""
    return hashlib.sha256(data.encode('utf-8')).hexdigest()


def canonical_event_string(event: dict) -> str:
    """
    Serialize the hashed fields of an event.
    Field order is fixed and separators carry no spaces so the hash is stable.
    """
    ordered = {
        'index': event.get('index', 0),
        'name': event.get('name', ''),
        'actor': event.get('actor', ''),
        'data': event.get('data') or {},
        'reason': event.get('reason'),
        'timestamp': event.get('timestamp', ''),
    }
    return json.dumps(ordered, separators=(',', ':'), sort_keys=False, ensure_ascii=False, default=str)


def compute_event_hash(event: dict, prev_hash: Optional[str] = None) -> str:
    """Chain hash: sha256(prev_hash + canonical event)."""
    return sha256((prev_hash or GENESIS) + canonical_event_string(event))


def verify_hash_chain(events: list):
    """
    Verify hash chain integrity of an event log.
    Returns (is_valid, list_of_errors).
    """
    errors = []

    if not events:
        return True, []

    prev_hash = GENESIS

    for i, event in enumerate(events):
        event_dict = event if isinstance(event, dict) else event.model_dump(mode='json')

        if event_dict.get('index') != i:
            errors.append(f"Event {i}: index out of order (got {event_dict.get('index')})")

        if event_dict.get('prev_hash') != prev_hash:
            errors.append(f"Event {i}: prev_hash does not link to event {i - 1}")

        expected = compute_event_hash(event_dict, prev_hash)
        actual = event_dict.get('hash', '')
        if expected != actual:
            errors.append(
                f"Event {i}: Hash chain broken. Expected {expected[:16]}..., "
                f"got {actual[:16]}..."
            )

        # Continue from the recorded hash so one bad entry is reported once
        prev_hash = actual

    return len(errors) == 0, errors


def check_document_hash(doc_hash: Optional[str]) -> str:
    """
    Validate a content-addressed document pointer.
    Must be exactly DOC_HASH_LENGTH characters starting with DOC_HASH_PREFIX.
    """
    if doc_hash is None or len(doc_hash) != DOC_HASH_LENGTH:
        raise InvalidDocumentHash(
            "length",
            f"document hash must be {DOC_HASH_LENGTH} characters",
        )
    if not doc_hash.startswith(DOC_HASH_PREFIX):
        raise InvalidDocumentHash(
            "prefix",
            f"document hash must start with {DOC_HASH_PREFIX!r}",
        )
    return doc_hash
