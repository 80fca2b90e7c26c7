import json

from manifest_mcp.redaction import (
    MAX_DEPTH_MARKER,
    REDACTED,
    REDACTED_MNEMONIC,
    sanitize_for_logging,
)

TWELVE_WORDS = " ".join(["abandon"] * 11 + ["about"])


def test_sensitive_keys_are_redacted_case_insensitively():
    data = {"Mnemonic": "x", "privateKey": "y", "API_KEY": "z", "module": "bank"}
    assert sanitize_for_logging(data) == {
        "Mnemonic": REDACTED,
        "privateKey": REDACTED,
        "API_KEY": REDACTED,
        "module": "bank",
    }


def test_mnemonic_like_strings_are_redacted_anywhere():
    data = {"args": ["manifest1abc", TWELVE_WORDS], "note": " ".join(["w"] * 24)}
    out = sanitize_for_logging(data)
    assert out["args"] == ["manifest1abc", REDACTED_MNEMONIC]
    assert out["note"] == REDACTED_MNEMONIC
    assert sanitize_for_logging(" ".join(["w"] * 13)) == " ".join(["w"] * 13)


def test_serialised_detail_keeps_key_name():
    text = json.dumps(sanitize_for_logging({"mnemonic": TWELVE_WORDS}))
    assert "mnemonic" in text
    assert "abandon" not in text


def test_depth_limit_and_scalars():
    nested = current = {}
    for _ in range(15):
        current["next"] = {}
        current = current["next"]
    out = sanitize_for_logging(nested)
    for _ in range(11):
        out = out["next"]
    assert out == MAX_DEPTH_MARKER
    assert sanitize_for_logging(5) == 5
    assert sanitize_for_logging(None) is None
