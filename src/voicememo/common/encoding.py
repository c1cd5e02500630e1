from __future__ import annotations

from typing import Literal


FileFormat = Literal["wav", "flac"]


def format_default_extension(fmt: FileFormat) -> str:
    return {"wav": ".wav", "flac": ".flac"}[fmt]


def subtype_for_bit_depth(bit_depth: int) -> str:
    # libsndfile subtypes understood by both WAV and FLAC containers
    return "PCM_24" if bit_depth >= 24 else "PCM_16"


def replace_extension(filename: str, new_ext: str) -> str:
    # Assumes new_ext includes dot
    import os

    root, _old = os.path.splitext(filename)
    return root + new_ext
