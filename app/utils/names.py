# app/utils/names.py
import re

_WHITESPACE = re.compile(r"\s+")


def normalize_name(name) -> str:
    return _WHITESPACE.sub(" ", name or "").strip()
