import uuid


def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def is_generated(value: str, prefix: str) -> bool:
    """True for ids minted locally by gen_id(prefix)."""
    return value.startswith(f"{prefix}_")
