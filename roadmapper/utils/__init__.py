"""Utilities package."""

from .logger import get_app_logger, setup_logger, init_app_logger, mask_secret
from .idea_codec import encode_idea, decode_idea, preview_idea

__all__ = [
    "get_app_logger",
    "setup_logger",
    "init_app_logger",
    "mask_secret",
    "encode_idea",
    "decode_idea",
    "preview_idea",
]
