from __future__ import annotations
import base64
import os


def get_allowed_origins():
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    if raw.strip() == "*":
        return ["*"]
    return [x.strip() for x in raw.split(",") if x.strip()]


def decode_kubeconfig(encoded: str) -> str:
    """AKS credential listings return kubeconfigs base64 encoded."""
    return base64.b64decode(encoded).decode("utf-8")
