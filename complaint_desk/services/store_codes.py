"""Store directory: store name -> 3-letter complaint code."""

import re

from complaint_desk.utils.normalization import normalize_text

STORE_CODE_MAP: dict[str, str] = {
    "magarpatta": "MAG",
    "kharadi": "KHA",
    "viman nagar": "VMN",
    "wagholi": "WAG",
    "koregaon park": "KRP",
    "mg road": "MGR",
    "salunkhe vihar": "SLV",
    "jm road": "JMR",
    "aundh": "AUN",
    "pimple saudagar": "PMS",
    "balewadi": "BLW",
    "chinchwad": "CHN",
    "ravet": "RAV",
    "wakad": "WAK",
    "happiness street": "HPS",
    "kothrud": "KOT",
    "sinhgad road": "SNR",
    "hinjewadi": "HNJ",
    "undri": "UND",
    "dhanori": "DHN",
    "warje": "WRJ",
    "bibwewadi": "BBW",
    "bavdhan": "BVD",
}

UNKNOWN_STORE_CODE = "OTH"


def fallback_store_code(store_name: str | None) -> str:
    """Derive a code from the first alphabetic token, padded with X."""
    for token in normalize_text(store_name).split(" "):
        letters = re.sub(r"[^A-Za-z]", "", token)
        if letters:
            return letters[:3].upper().ljust(3, "X")
    return UNKNOWN_STORE_CODE


def get_store_code(store_name: str | None) -> str:
    key = normalize_text(store_name).lower()
    if not key:
        return UNKNOWN_STORE_CODE
    return STORE_CODE_MAP.get(key) or fallback_store_code(key)
