"""Receipt schema definitions and validation.

Constants:
    RECEIPT_SCHEMAS: Schema dicts keyed by receipt_type
    REQUIRED_FIELDS: Fields required in all receipts

Functions:
    validate_receipt: Validate receipt against schema
"""
from .receipt import StopRule


# Required fields for all receipt types
REQUIRED_FIELDS = ["receipt_type", "ts", "artifact_id", "payload_hash"]


RECEIPT_SCHEMAS = {
    "seal": {
        "content_signature": str,
        "owner_key": str,
        "creator_public_key": (str, type(None)),
    },
    "send": {
        "transfer_index": int,
        "sender_kai_pulse": int,
        "previous_head_root": (str, type(None)),
        "window_size": int,
    },
    "receive": {
        "transfer_index": int,
        "receiver_kai_pulse": int,
        "transfer_leaf_hash_receive": (str, type(None)),
    },
    "segment": {
        "segment_index": int,
        "segment_root": str,
        "cid": str,
        "count": int,
        "cumulative_transfers": int,
    },
    "verify": {
        "state": str,
        "chain_ok": bool,
        "head_proof_ok": (bool, type(None)),
    },
    "key": {
        "action": str,
        "public_key": str,
    },
    "anomaly": {
        "operation": str,
        "category": str,
        "message": str,
    },
}


def validate_receipt(receipt: dict) -> bool:
    """Validate receipt has required fields and matches schema.

    Args:
        receipt: Receipt dict to validate

    Returns:
        True if valid

    Raises:
        StopRule: If validation fails (missing field, wrong type, unknown receipt_type)
    """
    if not isinstance(receipt, dict):
        raise StopRule("Receipt must be a dict")

    for field in REQUIRED_FIELDS:
        if field not in receipt:
            raise StopRule(f"Missing required field: {field}")

    receipt_type = receipt["receipt_type"]
    if receipt_type not in RECEIPT_SCHEMAS:
        raise StopRule(f"Unknown receipt_type: {receipt_type}")

    for field, expected in RECEIPT_SCHEMAS[receipt_type].items():
        if field not in receipt:
            raise StopRule(f"{receipt_type}: missing field {field}")
        if not isinstance(receipt[field], expected):
            raise StopRule(f"{receipt_type}: field {field} has wrong type")

    return True
