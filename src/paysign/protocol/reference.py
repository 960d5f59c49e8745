import uuid

REFERENCE_PREFIX = "PAT-"


def generate_reference_no() -> str:
    """Partner reference number used to correlate (and dedupe) transfers."""
    return f"{REFERENCE_PREFIX}{uuid.uuid4()}"
