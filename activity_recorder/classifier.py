# activity_recorder/classifier.py
import re
from typing import Optional

MAX_STABLE_ID_LENGTH = 20

_LEADING_MARKER = re.compile(r"^[_:]")
_CAMEL_NOISE = re.compile(r"[A-Z]{2,}[a-z]+[A-Z]")
_DIGIT_RUN = re.compile(r"\d{3,}")
_HEX_HASH = re.compile(r"^[a-f0-9]{8,}$", re.IGNORECASE)


def is_dynamic_id(element_id: Optional[str]) -> bool:
    """
    Heuristically decide whether an id looks machine generated.

    Generated ids change between renders, so a selector built on them will
    not find the element again. Empty ids count as dynamic.
    """
    if not element_id:
        return True
    if len(element_id) > MAX_STABLE_ID_LENGTH:
        return True
    if _LEADING_MARKER.search(element_id):
        return True
    if _CAMEL_NOISE.search(element_id):
        return True
    if _DIGIT_RUN.search(element_id):
        return True
    if _HEX_HASH.match(element_id):
        return True
    return False
