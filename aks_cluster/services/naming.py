import re

# AKS DNS prefixes allow 1-54 alphanumerics and hyphens.
DNS_PREFIX_MAX = 54


def safe_name(name: str, max_len: int = DNS_PREFIX_MAX) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9-]", "-", str(name))[:max_len].strip("-")
    if not cleaned:
        raise ValueError(f"Cannot derive a resource name from {name!r}")
    return cleaned
